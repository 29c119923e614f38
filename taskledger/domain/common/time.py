from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt


def to_iso(dt: datetime) -> str:
    ensure_aware(dt)
    # fixed width UTC so string comparison in SQL matches chronological order
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso_opt(dt: Optional[datetime]) -> Optional[str]:
    return to_iso(dt) if dt is not None else None


def from_iso_opt(s: Optional[str]) -> Optional[datetime]:
    return from_iso(s) if s else None
