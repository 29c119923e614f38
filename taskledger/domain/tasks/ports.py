from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from taskledger.domain.tasks.models import (
    ContextSummary,
    ProjectSummary,
    TagSummary,
    Task,
    TaskFilter,
)


class TaskRepository(ABC):
    @abstractmethod
    async def create(self, task: Task, acyclic: bool = False) -> int: ...

    @abstractmethod
    async def get(self, task_id: int) -> Optional[Task]: ...

    @abstractmethod
    async def get_by_uuid(self, uuid: str) -> Optional[Task]: ...

    @abstractmethod
    async def update(self, task: Task, acyclic: bool = False) -> bool: ...

    @abstractmethod
    async def delete(self, task_id: int) -> bool: ...

    @abstractmethod
    async def list(self, flt: TaskFilter) -> list[Task]: ...

    @abstractmethod
    async def count(self, flt: TaskFilter) -> int: ...

    @abstractmethod
    async def list_without_priority(self) -> list[Task]: ...

    @abstractmethod
    async def status_summary(self) -> dict[str, int]: ...

    @abstractmethod
    async def priority_summary(self) -> dict[str, int]: ...

    @abstractmethod
    async def projects(self) -> list[ProjectSummary]: ...

    @abstractmethod
    async def tags(self) -> list[TagSummary]: ...

    @abstractmethod
    async def contexts(self) -> list[ContextSummary]: ...


class DependencyRepository(ABC):
    @abstractmethod
    async def add(self, task_uuid: str, depends_on_uuid: str, acyclic: bool = False) -> None: ...

    @abstractmethod
    async def remove(self, task_uuid: str, depends_on_uuid: str) -> int: ...

    @abstractmethod
    async def clear(self, task_uuid: str) -> int: ...

    @abstractmethod
    async def list_for(self, task_uuid: str) -> list[str]: ...

    @abstractmethod
    async def list_for_many(self, task_uuids: Sequence[str]) -> dict[str, list[str]]: ...

    @abstractmethod
    async def list_dependents(self, blocking_uuid: str) -> list[Task]: ...
