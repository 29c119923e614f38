from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from taskledger.domain.common.ports import Clock


class SystemClock(Clock):
    """Wall clock in the configured zone. Stored timestamps are normalized to UTC on write."""

    def __init__(self, tz_name: str = "UTC") -> None:
        try:
            self._tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise RuntimeError(f"TZ invalid: {tz_name!r}") from e

    def now(self) -> datetime:
        return datetime.now(self._tz)
