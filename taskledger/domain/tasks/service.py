from __future__ import annotations

import logging
from typing import Optional

from taskledger.domain.common.errors import NotFoundError
from taskledger.domain.common.ports import Clock, IdGenerator
from taskledger.domain.tasks.graph import DependencyGraph
from taskledger.domain.tasks.models import (
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    STATUS_ABANDONED,
    STATUS_BLOCKED,
    STATUS_COMPLETED,
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    STATUS_TODO,
    ContextSummary,
    ProjectSummary,
    TagSummary,
    Task,
    TaskFilter,
)
from taskledger.domain.tasks.ports import TaskRepository
from taskledger.domain.tasks.rules import validate_description, validate_uuid

logger = logging.getLogger(__name__)


class TaskStore:
    """
    Task lifecycle on top of the task repository.

    Every read hydrates `depends_on` through the dependency graph; create and
    update write the row and its edges in one transaction.
    Update and delete of a missing id raise NotFoundError.
    """

    def __init__(self, repo: TaskRepository, graph: DependencyGraph, clock: Clock, ids: IdGenerator) -> None:
        self._repo = repo
        self._graph = graph
        self._clock = clock
        self._ids = ids

    async def create(self, task: Task) -> int:
        validate_description(task.description)
        if not task.uuid:
            task.uuid = self._ids.new_id()
        task.depends_on = list(dict.fromkeys(task.depends_on))
        self._graph.validate_edges(task.uuid, task.depends_on)

        now = self._clock.now()
        task.entry = now
        task.modified = now

        task.id = await self._repo.create(task, acyclic=self._graph.enforce_acyclic)
        logger.info("Task created id=%s uuid=%s status=%s", task.id, task.uuid, task.status)
        return task.id

    async def get(self, task_id: int) -> Task:
        task = await self._repo.get(task_id)
        if task is None:
            raise NotFoundError("task", task_id, f"task not found: {task_id}")
        return await self._graph.populate_dependencies(task)

    async def get_by_uuid(self, uuid: str) -> Task:
        task = await self._repo.get_by_uuid(uuid)
        if task is None:
            raise NotFoundError("task", uuid, f"task not found: {uuid}")
        return await self._graph.populate_dependencies(task)

    async def update(self, task: Task) -> None:
        validate_description(task.description)
        validate_uuid(task.uuid)
        task.depends_on = list(dict.fromkeys(task.depends_on))
        self._graph.validate_edges(task.uuid, task.depends_on)

        task.modified = self._clock.now()
        if not await self._repo.update(task, acyclic=self._graph.enforce_acyclic):
            raise NotFoundError("task", task.id, f"task not found: {task.id}")
        logger.debug("Task updated id=%s deps=%s", task.id, task.depends_on)

    async def delete(self, task_id: int) -> None:
        """Delete the row; edges and time entries go with it by cascade."""
        if not await self._repo.delete(task_id):
            raise NotFoundError("task", task_id, f"task not found: {task_id}")
        logger.info("Task deleted id=%s", task_id)

    async def list(self, flt: Optional[TaskFilter] = None) -> list[Task]:
        tasks = await self._repo.list(flt or TaskFilter())
        await self._graph.populate_many(tasks)
        return tasks

    async def count(self, flt: Optional[TaskFilter] = None) -> int:
        return await self._repo.count(flt or TaskFilter())

    # ---- shortcuts ----

    async def get_by_project(self, project: str) -> list[Task]:
        return await self.list(TaskFilter(project=project))

    async def get_by_context(self, context: str) -> list[Task]:
        return await self.list(TaskFilter(context=context))

    async def get_by_tag(self, tag: str) -> list[Task]:
        return await self.list(TaskFilter(tag=tag))

    async def get_by_status(self, status: str) -> list[Task]:
        return await self.list(TaskFilter(status=status))

    async def get_todo(self) -> list[Task]:
        return await self.get_by_status(STATUS_TODO)

    async def get_in_progress(self) -> list[Task]:
        return await self.get_by_status(STATUS_IN_PROGRESS)

    async def get_blocked(self) -> list[Task]:
        return await self.get_by_status(STATUS_BLOCKED)

    async def get_done(self) -> list[Task]:
        return await self.get_by_status(STATUS_DONE)

    async def get_abandoned(self) -> list[Task]:
        return await self.get_by_status(STATUS_ABANDONED)

    async def get_pending(self) -> list[Task]:
        return await self.get_by_status(STATUS_PENDING)

    async def get_completed(self) -> list[Task]:
        return await self.get_by_status(STATUS_COMPLETED)

    async def get_by_priority(self, priority: str) -> list[Task]:
        """Empty priority selects tasks with no priority at all."""
        if not priority:
            tasks = await self._repo.list_without_priority()
            await self._graph.populate_many(tasks)
            return tasks
        return await self.list(TaskFilter(priority=priority))

    async def get_high_priority(self) -> list[Task]:
        return await self.get_by_priority(PRIORITY_HIGH)

    async def get_medium_priority(self) -> list[Task]:
        return await self.get_by_priority(PRIORITY_MEDIUM)

    async def get_low_priority(self) -> list[Task]:
        return await self.get_by_priority(PRIORITY_LOW)

    # ---- aggregates ----

    async def status_summary(self) -> dict[str, int]:
        return await self._repo.status_summary()

    async def priority_summary(self) -> dict[str, int]:
        return await self._repo.priority_summary()

    async def projects(self) -> list[ProjectSummary]:
        return await self._repo.projects()

    async def tags(self) -> list[TagSummary]:
        return await self._repo.tags()

    async def contexts(self) -> list[ContextSummary]:
        return await self._repo.contexts()
