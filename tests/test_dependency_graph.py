"""
Dependency edges between tasks: add/remove/clear, inverse lookup, cascade on delete,
and the three validation modes.
"""
from __future__ import annotations

import asyncio

import pytest

from taskledger.domain.common.errors import ConstraintError, DependencyCycleError, ValidationError
from taskledger.domain.tasks.models import Task
from taskledger.domain.tasks.rules import DependencyValidation
from tests.fakes import open_test_services


async def _tasks(svc, *uuids: str) -> None:
    for u in uuids:
        await svc.tasks.create(Task(description=f"task {u}", uuid=u))


async def _edge_count(svc) -> int:
    row = await svc.db.fetchone("SELECT COUNT(*) AS n FROM task_dependencies;")
    return int(row["n"])


def test_add_remove_clear(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        await _tasks(svc, "a", "b", "c")
        graph = svc.graph

        await graph.add_dependency("a", "b")
        await graph.add_dependency("a", "c")
        # adding the same edge twice keeps one row
        await graph.add_dependency("a", "b")
        assert await graph.get_dependencies("a") == ["b", "c"]
        assert await _edge_count(svc) == 2

        await graph.remove_dependency("a", "b")
        assert await graph.get_dependencies("a") == ["c"]

        # missing edge is a no-op
        await graph.remove_dependency("a", "b")
        await graph.remove_dependency("c", "a")

        await graph.clear_dependencies("a")
        assert await graph.get_dependencies("a") == []
        assert await graph.get_dependencies("nobody") == []

    asyncio.run(run())


def test_dependents_are_the_inverse_relation(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        await _tasks(svc, "a", "b", "c")
        await svc.graph.add_dependency("a", "c")
        await svc.graph.add_dependency("b", "c")
        await svc.graph.add_dependency("b", "a")

        dependents = await svc.graph.get_dependents("c")
        assert [t.uuid for t in dependents] == ["a", "b"]
        by_uuid = {t.uuid: t for t in dependents}
        assert by_uuid["a"].depends_on == ["c"]
        assert by_uuid["b"].depends_on == ["c", "a"]

        blocked = await svc.graph.get_blocked_tasks("a")
        assert [t.uuid for t in blocked] == ["b"]
        assert await svc.graph.get_dependents("b") == []

    asyncio.run(run())


def test_create_writes_edges_and_reads_hydrate_them(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        await _tasks(svc, "b", "c")
        task_id = await svc.tasks.create(Task(description="needs b and c", uuid="a", depends_on=["b", "c", "b"]))

        loaded = await svc.tasks.get(task_id)
        assert loaded.depends_on == ["b", "c"]
        assert (await svc.tasks.get_by_uuid("a")).depends_on == ["b", "c"]

        listed = {t.uuid: t.depends_on for t in await svc.tasks.list()}
        assert listed == {"a": ["b", "c"], "b": [], "c": []}

    asyncio.run(run())


def test_update_replaces_edges_wholesale(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        await _tasks(svc, "b", "c", "d")
        task_id = await svc.tasks.create(Task(description="a", uuid="a", depends_on=["b", "c"]))

        task = await svc.tasks.get(task_id)
        task.depends_on = ["d"]
        await svc.tasks.update(task)
        assert await svc.graph.get_dependencies("a") == ["d"]

        task.depends_on = []
        await svc.tasks.update(task)
        assert await svc.graph.get_dependencies("a") == []
        assert await _edge_count(svc) == 0

    asyncio.run(run())


def test_unknown_dependency_rolls_back_the_task_row(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        with pytest.raises(ConstraintError):
            await svc.tasks.create(Task(description="orphan", uuid="a", depends_on=["ghost"]))

        assert await svc.tasks.count() == 0
        assert await _edge_count(svc) == 0

        await _tasks(svc, "b")
        with pytest.raises(ConstraintError):
            await svc.graph.add_dependency("b", "ghost")

    asyncio.run(run())


def test_failed_update_keeps_previous_edges(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        await _tasks(svc, "b")
        task_id = await svc.tasks.create(Task(description="a", uuid="a", depends_on=["b"]))

        task = await svc.tasks.get(task_id)
        task.depends_on = ["ghost"]
        with pytest.raises(ConstraintError):
            await svc.tasks.update(task)
        assert await svc.graph.get_dependencies("a") == ["b"]

    asyncio.run(run())


def test_validation_off_accepts_self_loops_and_cycles(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        assert svc.graph.validation is DependencyValidation.OFF
        await _tasks(svc, "a", "b")

        await svc.graph.add_dependency("a", "a")
        await svc.graph.add_dependency("a", "b")
        await svc.graph.add_dependency("b", "a")
        assert await svc.graph.get_dependencies("a") == ["a", "b"]
        assert await svc.graph.get_dependencies("b") == ["a"]

    asyncio.run(run())


def test_no_self_loops_mode(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path, validation=DependencyValidation.NO_SELF_LOOPS)
        await _tasks(svc, "a", "b")

        with pytest.raises(DependencyCycleError) as exc:
            await svc.graph.add_dependency("a", "a")
        assert isinstance(exc.value, ValidationError)
        assert str(exc.value) == "task a cannot depend on itself"

        # longer cycles are still allowed in this mode
        await svc.graph.add_dependency("a", "b")
        await svc.graph.add_dependency("b", "a")
        assert await _edge_count(svc) == 2

        with pytest.raises(DependencyCycleError):
            await svc.tasks.create(Task(description="self", uuid="c", depends_on=["c"]))
        assert await svc.tasks.count() == 2

    asyncio.run(run())


def test_acyclic_mode_rejects_cycles(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path, validation=DependencyValidation.ACYCLIC)
        await _tasks(svc, "a", "b", "c")

        await svc.graph.add_dependency("a", "b")
        with pytest.raises(DependencyCycleError) as exc:
            await svc.graph.add_dependency("b", "a")
        assert exc.value.task_uuid == "b"
        assert exc.value.depends_on_uuid == "a"

        await svc.graph.add_dependency("b", "c")
        with pytest.raises(DependencyCycleError):
            await svc.graph.add_dependency("c", "a")
        with pytest.raises(DependencyCycleError):
            await svc.graph.add_dependency("c", "c")

        # diamond-shaped graphs are fine
        await svc.graph.add_dependency("a", "c")
        assert await svc.graph.get_dependencies("a") == ["b", "c"]
        assert await svc.graph.get_dependencies("c") == []

    asyncio.run(run())


def test_acyclic_mode_checks_update(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path, validation=DependencyValidation.ACYCLIC)
        await _tasks(svc, "b")
        await svc.tasks.create(Task(description="a", uuid="a", depends_on=["b"]))

        b = await svc.tasks.get_by_uuid("b")
        b.depends_on = ["a"]
        with pytest.raises(DependencyCycleError):
            await svc.tasks.update(b)

        assert await svc.graph.get_dependencies("b") == []
        assert await svc.graph.get_dependencies("a") == ["b"]

    asyncio.run(run())


def test_delete_cascades_edges_both_ways(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        await _tasks(svc, "a", "b", "c")
        await svc.graph.add_dependency("a", "b")
        await svc.graph.add_dependency("b", "c")

        b = await svc.tasks.get_by_uuid("b")
        await svc.tasks.delete(b.id)

        assert await svc.graph.get_dependencies("a") == []
        assert await svc.graph.get_dependents("c") == []
        assert await _edge_count(svc) == 0

    asyncio.run(run())


def test_acyclic_mode_concurrent_reverse_edges(tmp_path):
    """Two writers adding a -> b and b -> a at once: exactly one wins."""

    async def run():
        svc = await open_test_services(tmp_path, validation=DependencyValidation.ACYCLIC)
        await _tasks(svc, "a", "b")

        results = await asyncio.gather(
            svc.graph.add_dependency("a", "b"),
            svc.graph.add_dependency("b", "a"),
            return_exceptions=True,
        )
        rejected = [r for r in results if isinstance(r, DependencyCycleError)]
        assert len(rejected) == 1
        assert sum(r is None for r in results) == 1

        a_deps = await svc.graph.get_dependencies("a")
        b_deps = await svc.graph.get_dependencies("b")
        assert not ("b" in a_deps and "a" in b_deps)
        assert await _edge_count(svc) == 1

    asyncio.run(run())


def test_acyclic_mode_concurrent_updates(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path, validation=DependencyValidation.ACYCLIC)
        await _tasks(svc, "a", "b")
        a = await svc.tasks.get_by_uuid("a")
        b = await svc.tasks.get_by_uuid("b")
        a.depends_on = ["b"]
        b.depends_on = ["a"]

        results = await asyncio.gather(
            svc.tasks.update(a),
            svc.tasks.update(b),
            return_exceptions=True,
        )
        assert len([r for r in results if isinstance(r, DependencyCycleError)]) == 1

        a_deps = await svc.graph.get_dependencies("a")
        b_deps = await svc.graph.get_dependencies("b")
        assert not ("b" in a_deps and "a" in b_deps)
        assert await _edge_count(svc) == 1

    asyncio.run(run())
