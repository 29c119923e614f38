from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from taskledger.config import Settings, load_settings
from taskledger.domain.common.ports import Clock, IdGenerator
from taskledger.domain.common.time import to_iso
from taskledger.domain.tasks.graph import DependencyGraph
from taskledger.domain.tasks.service import TaskStore
from taskledger.domain.tracking.service import TimeTracker
from taskledger.infra.clock.system_clock import SystemClock
from taskledger.infra.db.connection import Database
from taskledger.infra.db.repo.dependencies_sqlite import DependencySqliteRepo
from taskledger.infra.db.repo.tasks_sqlite import TaskSqliteRepo
from taskledger.infra.db.repo.time_entries_sqlite import TimeEntrySqliteRepo
from taskledger.infra.db.schema_version import MIGRATIONS_DIR, apply_migrations
from taskledger.infra.ids.uuid_gen import UuidGenerator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    db: Database
    clock: Clock
    tasks: TaskStore
    graph: DependencyGraph
    tracker: TimeTracker


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - [PID:%(process)d] - %(message)s",
    )


async def open_services(
    settings: Settings,
    clock: Optional[Clock] = None,
    ids: Optional[IdGenerator] = None,
) -> Services:
    # --- DB path: absolute, dir exists ---
    db_path = settings.db_path
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    db = Database(str(db_path), op_timeout=settings.op_timeout_seconds)
    clock = clock or SystemClock(settings.timezone)
    ids = ids or UuidGenerator()

    # --- migrations ---
    applied = await apply_migrations(
        db=db,
        migrations_dir=str(MIGRATIONS_DIR),
        now_iso=to_iso(clock.now()),
    )
    logger.info("Database ready db=%s migrations_applied=%s", db_path, applied)

    # --- services ---
    graph = DependencyGraph(DependencySqliteRepo(db), validation=settings.dependency_validation)
    tasks = TaskStore(repo=TaskSqliteRepo(db), graph=graph, clock=clock, ids=ids)
    tracker = TimeTracker(repo=TimeEntrySqliteRepo(db), clock=clock)

    return Services(db=db, clock=clock, tasks=tasks, graph=graph, tracker=tracker)


async def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    services = await open_services(settings)
    summary = await services.tasks.status_summary()
    total = sum(summary.values())
    logger.info("Tasks total=%s by_status=%s", total, summary)
    logger.info("Dependency validation=%s", services.graph.validation.value)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
