from __future__ import annotations

import logging
from typing import Iterable, Sequence

from taskledger.domain.common.errors import DependencyCycleError
from taskledger.domain.tasks.models import Task
from taskledger.domain.tasks.ports import DependencyRepository
from taskledger.domain.tasks.rules import DependencyValidation, check_self_loop

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    Directed "task depends on task" edges, keyed by task uuid.

    Validation of new edges is configurable: OFF writes whatever it is given,
    NO_SELF_LOOPS rejects A -> A, ACYCLIC also rejects edges that would close a cycle.
    """

    def __init__(
        self,
        repo: DependencyRepository,
        validation: DependencyValidation = DependencyValidation.OFF,
    ) -> None:
        self._repo = repo
        self._validation = validation

    @property
    def validation(self) -> DependencyValidation:
        return self._validation

    @property
    def enforce_acyclic(self) -> bool:
        """Whether writes must run the reachability check inside their transaction."""
        return self._validation is DependencyValidation.ACYCLIC

    def validate_edge(self, task_uuid: str, depends_on_uuid: str) -> None:
        """Checks that need no storage; cycle detection happens in the write transaction."""
        if self._validation is DependencyValidation.OFF:
            return
        try:
            check_self_loop(task_uuid, depends_on_uuid)
        except DependencyCycleError:
            logger.warning("Rejected dependency %s -> %s (%s)", task_uuid, depends_on_uuid, self._validation.value)
            raise

    def validate_edges(self, task_uuid: str, depends_on: Iterable[str]) -> None:
        for dep in depends_on:
            self.validate_edge(task_uuid, dep)

    async def add_dependency(self, task_uuid: str, depends_on_uuid: str) -> None:
        self.validate_edge(task_uuid, depends_on_uuid)
        await self._repo.add(task_uuid, depends_on_uuid, acyclic=self.enforce_acyclic)

    async def remove_dependency(self, task_uuid: str, depends_on_uuid: str) -> None:
        """Delete one edge; a missing edge is not an error."""
        removed = await self._repo.remove(task_uuid, depends_on_uuid)
        if not removed:
            logger.debug("No dependency %s -> %s to remove", task_uuid, depends_on_uuid)

    async def clear_dependencies(self, task_uuid: str) -> None:
        await self._repo.clear(task_uuid)

    async def get_dependencies(self, task_uuid: str) -> list[str]:
        return await self._repo.list_for(task_uuid)

    async def get_dependents(self, blocking_uuid: str) -> list[Task]:
        """Tasks that depend on blocking_uuid, each with its own depends_on hydrated."""
        tasks = await self._repo.list_dependents(blocking_uuid)
        await self.populate_many(tasks)
        return tasks

    async def get_blocked_tasks(self, blocking_uuid: str) -> list[Task]:
        return await self.get_dependents(blocking_uuid)

    async def populate_dependencies(self, task: Task) -> Task:
        task.depends_on = await self._repo.list_for(task.uuid)
        return task

    async def populate_many(self, tasks: Sequence[Task]) -> None:
        deps = await self._repo.list_for_many([t.uuid for t in tasks])
        for t in tasks:
            t.depends_on = list(deps.get(t.uuid, []))
