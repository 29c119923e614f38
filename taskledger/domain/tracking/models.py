from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

MSG_ALREADY_ACTIVE = "task already has an active time entry"
MSG_NOT_ACTIVE = "time entry is not active"
MSG_NO_ACTIVE = "no active time entry found for task"
MSG_ENTRY_NOT_FOUND = "time entry not found"


@dataclass
class TimeEntry:
    id: int
    task_id: int
    start_time: datetime
    end_time: Optional[datetime]
    duration_seconds: int
    description: str
    created: datetime
    modified: datetime

    def is_active(self) -> bool:
        return self.end_time is None

    def stop(self, now: datetime) -> None:
        self.end_time = now
        self.duration_seconds = (now - self.start_time) // timedelta(seconds=1)
        self.modified = now

    def duration(self, now: datetime) -> timedelta:
        """Stored duration once stopped, live elapsed time while running."""
        if self.end_time is not None:
            return timedelta(seconds=self.duration_seconds)
        return now - self.start_time
