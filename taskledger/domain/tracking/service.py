from __future__ import annotations

import logging
from datetime import datetime, timedelta

from taskledger.domain.common.errors import ConflictError, NotFoundError
from taskledger.domain.common.ports import Clock
from taskledger.domain.common.time import ensure_aware, to_iso
from taskledger.domain.tracking.models import (
    MSG_ALREADY_ACTIVE,
    MSG_ENTRY_NOT_FOUND,
    MSG_NO_ACTIVE,
    MSG_NOT_ACTIVE,
    TimeEntry,
)
from taskledger.domain.tracking.ports import TimeEntryRepository

logger = logging.getLogger(__name__)


class TimeTracker:
    """
    Start/stop time tracking per task. No sqlite here.

    An entry is Active while end_time is None and Stopped afterwards; a stopped
    entry is never reopened. At most one Active entry exists per task: the
    check below is the fast path, the storage layer enforces it under races.
    """

    def __init__(self, repo: TimeEntryRepository, clock: Clock) -> None:
        self._repo = repo
        self._clock = clock

    async def start(self, task_id: int, description: str = "") -> TimeEntry:
        existing = await self._repo.get_active(task_id)
        if existing is not None:
            raise ConflictError(MSG_ALREADY_ACTIVE, entity="task", identifier=task_id)

        now = self._clock.now()
        entry_id = await self._repo.insert_active(
            task_id=task_id,
            start_at_iso=to_iso(now),
            description=description,
            created_at_iso=to_iso(now),
        )
        logger.info("Time entry started id=%s task_id=%s", entry_id, task_id)
        return TimeEntry(
            id=entry_id,
            task_id=task_id,
            start_time=now,
            end_time=None,
            duration_seconds=0,
            description=description,
            created=now,
            modified=now,
        )

    async def stop(self, entry_id: int) -> TimeEntry:
        entry = await self.get(entry_id)
        if not entry.is_active():
            raise ConflictError(MSG_NOT_ACTIVE, entity="time entry", identifier=entry_id)

        now = self._clock.now()
        entry.stop(now)

        stopped = await self._repo.mark_stopped(
            entry_id=entry.id,
            end_at_iso=to_iso(now),
            duration_seconds=entry.duration_seconds,
            updated_at_iso=to_iso(now),
        )
        if not stopped:
            # someone else stopped (or deleted) it between our read and write
            raise ConflictError(MSG_NOT_ACTIVE, entity="time entry", identifier=entry_id)

        logger.info(
            "Time entry stopped id=%s task_id=%s duration=%ss",
            entry.id,
            entry.task_id,
            entry.duration_seconds,
        )
        return entry

    async def stop_active_by_task_id(self, task_id: int) -> TimeEntry:
        active = await self.get_active_by_task_id(task_id)
        return await self.stop(active.id)

    async def get(self, entry_id: int) -> TimeEntry:
        entry = await self._repo.get(entry_id)
        if entry is None:
            raise NotFoundError("time entry", entry_id, MSG_ENTRY_NOT_FOUND)
        return entry

    async def get_active_by_task_id(self, task_id: int) -> TimeEntry:
        entry = await self._repo.get_active(task_id)
        if entry is None:
            raise NotFoundError("task", task_id, MSG_NO_ACTIVE)
        return entry

    async def get_by_task_id(self, task_id: int) -> list[TimeEntry]:
        return await self._repo.list_by_task(task_id)

    async def get_by_date_range(self, start: datetime, end: datetime) -> list[TimeEntry]:
        """Entries whose start_time lies in [start, end]; an inverted range is simply empty."""
        ensure_aware(start)
        ensure_aware(end)
        if end < start:
            return []
        return await self._repo.list_between(to_iso(start), to_iso(end))

    async def get_total_time_by_task_id(self, task_id: int) -> timedelta:
        now = self._clock.now()
        entries = await self._repo.list_by_task(task_id)
        return sum((e.duration(now) for e in entries), timedelta())

    async def delete(self, entry_id: int) -> None:
        if not await self._repo.delete(entry_id):
            raise NotFoundError("time entry", entry_id, MSG_ENTRY_NOT_FOUND)
        logger.debug("Time entry deleted id=%s", entry_id)
