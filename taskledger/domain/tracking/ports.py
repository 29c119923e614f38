from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from taskledger.domain.tracking.models import TimeEntry


class TimeEntryRepository(ABC):
    @abstractmethod
    async def insert_active(
        self,
        task_id: int,
        start_at_iso: str,
        description: str,
        created_at_iso: str,
    ) -> int: ...

    @abstractmethod
    async def get(self, entry_id: int) -> Optional[TimeEntry]: ...

    @abstractmethod
    async def get_active(self, task_id: int) -> Optional[TimeEntry]: ...

    @abstractmethod
    async def mark_stopped(
        self,
        entry_id: int,
        end_at_iso: str,
        duration_seconds: int,
        updated_at_iso: str,
    ) -> bool: ...

    @abstractmethod
    async def list_by_task(self, task_id: int) -> list[TimeEntry]: ...

    @abstractmethod
    async def list_between(self, start_iso: str, end_iso: str) -> list[TimeEntry]: ...

    @abstractmethod
    async def delete(self, entry_id: int) -> bool: ...
