"""
Time tracking: start/stop state machine, one active entry per task, live totals.

Uses a temporary DB file and a FakeClock so durations are exact.
Run with: python -m pytest tests/test_time_tracker.py -v
"""
from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from taskledger.domain.common.errors import ConflictError, ConstraintError, NotFoundError
from taskledger.domain.common.time import to_iso
from taskledger.domain.tasks.models import Task
from taskledger.infra.clock.system_clock import SystemClock
from taskledger.infra.db.repo.time_entries_sqlite import TimeEntrySqliteRepo
from tests.fakes import T0, FakeClock, open_test_services


async def _new_task(svc, uuid: str = "t1") -> int:
    return await svc.tasks.create(Task(description="write report", uuid=uuid))


async def _active_count(svc, task_id: int) -> int:
    row = await svc.db.fetchone(
        "SELECT COUNT(*) AS n FROM time_entries WHERE task_id = ? AND end_time IS NULL;",
        (task_id,),
    )
    return int(row["n"])


def test_start_then_stop_computes_whole_seconds(tmp_path):
    async def run():
        clock = FakeClock()
        svc = await open_test_services(tmp_path, clock=clock)
        task_id = await _new_task(svc)

        entry = await svc.tracker.start(task_id, "x")
        assert entry.is_active()
        assert entry.start_time == T0

        clock.advance(90.75)
        stopped = await svc.tracker.stop(entry.id)
        assert stopped.end_time is not None
        assert stopped.duration_seconds == 90
        assert stopped.duration_seconds == int((stopped.end_time - stopped.start_time).total_seconds())

        # persisted, not just returned
        loaded = await svc.tracker.get(entry.id)
        assert loaded.end_time == stopped.end_time
        assert loaded.duration_seconds == 90

        with pytest.raises(ConflictError) as exc:
            await svc.tracker.stop(entry.id)
        assert str(exc.value) == "time entry is not active"

    asyncio.run(run())


def test_second_start_is_rejected_without_writing(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        task_id = await _new_task(svc)

        await svc.tracker.start(task_id, "a")
        with pytest.raises(ConflictError) as exc:
            await svc.tracker.start(task_id, "b")
        assert str(exc.value) == "task already has an active time entry"

        entries = await svc.tracker.get_by_task_id(task_id)
        assert len(entries) == 1
        assert entries[0].description == "a"

    asyncio.run(run())


def test_concurrent_starts_leave_exactly_one_active_entry(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        task_id = await _new_task(svc)

        results = await asyncio.gather(
            svc.tracker.start(task_id, "first"),
            svc.tracker.start(task_id, "second"),
            svc.tracker.start(task_id, "third"),
            return_exceptions=True,
        )
        started = [r for r in results if not isinstance(r, BaseException)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(started) == 1
        assert len(conflicts) == 2
        assert await _active_count(svc, task_id) == 1

    asyncio.run(run())


def test_unique_index_rejects_second_active_insert(tmp_path):
    """The storage layer enforces one active entry even when the check is skipped."""

    async def run():
        svc = await open_test_services(tmp_path)
        task_id = await _new_task(svc)
        repo = TimeEntrySqliteRepo(svc.db)
        now = to_iso(T0)

        await repo.insert_active(task_id, now, "a", now)
        with pytest.raises(ConflictError):
            await repo.insert_active(task_id, now, "b", now)
        assert await _active_count(svc, task_id) == 1

    asyncio.run(run())


def test_start_after_stop_is_allowed(tmp_path):
    async def run():
        clock = FakeClock()
        svc = await open_test_services(tmp_path, clock=clock)
        task_id = await _new_task(svc)

        first = await svc.tracker.start(task_id)
        clock.advance(10)
        await svc.tracker.stop(first.id)
        clock.advance(5)
        second = await svc.tracker.start(task_id, "again")

        entries = await svc.tracker.get_by_task_id(task_id)
        # most recent first
        assert [e.id for e in entries] == [second.id, first.id]
        assert await _active_count(svc, task_id) == 1

    asyncio.run(run())


def test_start_for_missing_task_is_a_constraint_error(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        with pytest.raises(ConstraintError):
            await svc.tracker.start(999, "nothing to track")

    asyncio.run(run())


def test_stop_active_by_task_id(tmp_path):
    async def run():
        clock = FakeClock()
        svc = await open_test_services(tmp_path, clock=clock)
        task_id = await _new_task(svc)

        with pytest.raises(NotFoundError) as exc:
            await svc.tracker.stop_active_by_task_id(task_id)
        assert str(exc.value) == "no active time entry found for task"

        entry = await svc.tracker.start(task_id)
        clock.advance(42)
        stopped = await svc.tracker.stop_active_by_task_id(task_id)
        assert stopped.id == entry.id
        assert stopped.duration_seconds == 42

    asyncio.run(run())


def test_stop_unknown_entry_is_not_found(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        with pytest.raises(NotFoundError) as exc:
            await svc.tracker.stop(12345)
        assert str(exc.value) == "time entry not found"

    asyncio.run(run())


def test_total_time_includes_running_entry(tmp_path):
    async def run():
        clock = FakeClock()
        svc = await open_test_services(tmp_path, clock=clock)
        task_id = await _new_task(svc)

        assert await svc.tracker.get_total_time_by_task_id(task_id) == timedelta(0)

        done = await svc.tracker.start(task_id)
        clock.advance(60)
        await svc.tracker.stop(done.id)

        await svc.tracker.start(task_id)
        clock.advance(30)
        first = await svc.tracker.get_total_time_by_task_id(task_id)
        assert first == timedelta(seconds=90)

        clock.advance(10)
        second = await svc.tracker.get_total_time_by_task_id(task_id)
        assert second == timedelta(seconds=100)
        assert second >= first

    asyncio.run(run())


def test_date_range_is_inclusive_and_inverted_range_is_empty(tmp_path):
    async def run():
        clock = FakeClock()
        svc = await open_test_services(tmp_path, clock=clock)
        a = await _new_task(svc, "a")
        b = await _new_task(svc, "b")

        e1 = await svc.tracker.start(a, "09:00")
        clock.advance(3600)
        await svc.tracker.stop(e1.id)
        e2 = await svc.tracker.start(b, "10:00")
        clock.advance(3600)
        e3 = await svc.tracker.start(a, "11:00")

        start = T0
        end = T0 + timedelta(hours=1)
        found = await svc.tracker.get_by_date_range(start, end)
        assert [e.id for e in found] == [e2.id, e1.id]

        everything = await svc.tracker.get_by_date_range(T0, T0 + timedelta(hours=2))
        assert {e.id for e in everything} == {e1.id, e2.id, e3.id}

        assert await svc.tracker.get_by_date_range(end, start) == []

    asyncio.run(run())


def test_delete_entry(tmp_path):
    async def run():
        svc = await open_test_services(tmp_path)
        task_id = await _new_task(svc)
        entry = await svc.tracker.start(task_id)

        await svc.tracker.delete(entry.id)
        assert await svc.tracker.get_by_task_id(task_id) == []

        with pytest.raises(NotFoundError) as exc:
            await svc.tracker.delete(entry.id)
        assert str(exc.value) == "time entry not found"

    asyncio.run(run())


def test_deleting_task_cascades_to_time_entries(tmp_path):
    async def run():
        clock = FakeClock()
        svc = await open_test_services(tmp_path, clock=clock)
        task_id = await _new_task(svc)
        entry = await svc.tracker.start(task_id)
        clock.advance(5)
        await svc.tracker.stop(entry.id)
        await svc.tracker.start(task_id)

        await svc.tasks.delete(task_id)
        row = await svc.db.fetchone("SELECT COUNT(*) AS n FROM time_entries;")
        assert row["n"] == 0

    asyncio.run(run())


def test_scenario_with_system_clock(tmp_path):
    """Create t1, start, sleep 1s, stop: duration >= 1 and nothing stays active."""

    async def run():
        svc = await open_test_services(tmp_path, clock=SystemClock("UTC"))
        task_id = await _new_task(svc, "t1")

        entry = await svc.tracker.start(task_id, "work")
        await asyncio.sleep(1)
        stopped = await svc.tracker.stop(entry.id)
        assert stopped.duration_seconds >= 1

        entries = await svc.tracker.get_by_task_id(task_id)
        assert len(entries) == 1

        with pytest.raises(NotFoundError):
            await svc.tracker.get_active_by_task_id(task_id)

    asyncio.run(run())


def test_entry_duration_is_live_until_stopped():
    from taskledger.domain.tracking.models import TimeEntry

    entry = TimeEntry(
        id=1,
        task_id=1,
        start_time=T0,
        end_time=None,
        duration_seconds=0,
        description="",
        created=T0,
        modified=T0,
    )
    assert entry.duration(T0 + timedelta(seconds=7)) == timedelta(seconds=7)

    entry.stop(T0 + timedelta(seconds=12, milliseconds=900))
    assert not entry.is_active()
    assert entry.duration_seconds == 12
    # frozen once stopped
    assert entry.duration(T0 + timedelta(hours=5)) == timedelta(seconds=12)
