from __future__ import annotations

import logging
import sqlite3
from collections import Counter
from typing import Optional

from taskledger.domain.common.errors import ConstraintError, SerializationError
from taskledger.domain.common.time import to_iso
from taskledger.domain.tasks.models import (
    NO_PRIORITY,
    ContextSummary,
    ProjectSummary,
    TagSummary,
    Task,
    TaskFilter,
)
from taskledger.domain.tasks.ports import TaskRepository
from taskledger.infra.db.connection import Database
from taskledger.infra.db.query import AnyOf, Condition, Predicate, render_limit, render_order, render_where
from taskledger.infra.db.repo.dependencies_sqlite import CLEAR_EDGES_SQL, write_edges
from taskledger.infra.db.repo.task_rows import (
    WRITE_COLUMNS,
    decode_list,
    row_to_task,
    task_columns,
    task_params,
)

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = (
    "id", "uuid", "description", "status", "priority", "project", "context",
    "due", "wait", "scheduled", "entry", "modified", "end", "start",
)
DEFAULT_ORDER = "modified DESC, id DESC"

_INSERT_SQL = (
    "INSERT INTO tasks ("
    + ", ".join(f'"{c}"' for c in WRITE_COLUMNS)
    + ") VALUES ("
    + ", ".join("?" for _ in WRITE_COLUMNS)
    + ");"
)
_UPDATE_SQL = (
    "UPDATE tasks SET "
    + ", ".join(f'"{c}" = ?' for c in WRITE_COLUMNS if c != "entry")
    + " WHERE id = ?;"
)


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _raise_if_malformed_tags(e: sqlite3.OperationalError) -> None:
    # json_each over a corrupted tags column
    if "malformed JSON" in str(e):
        raise SerializationError("tags", str(e)) from e


def filter_conditions(flt: TaskFilter) -> list[Condition]:
    conds: list[Condition] = []
    if flt.status:
        conds.append(Predicate("status", "eq", flt.status))
    if flt.priority:
        conds.append(Predicate("priority", "eq", flt.priority))
    if flt.project:
        conds.append(Predicate("project", "eq", flt.project))
    if flt.context:
        conds.append(Predicate("context", "eq", flt.context))
    if flt.tag:
        conds.append(Predicate("tags", "json_has", flt.tag))
    if flt.due_after is not None:
        conds.append(Predicate("due", "ge", to_iso(flt.due_after)))
    if flt.due_before is not None:
        conds.append(Predicate("due", "le", to_iso(flt.due_before)))
    if flt.search:
        pattern = f"%{escape_like(flt.search)}%"
        conds.append(
            AnyOf(tuple(Predicate(col, "like", pattern) for col in ("description", "project", "context", "tags")))
        )
    return conds


class TaskSqliteRepo(TaskRepository):
    """tasks table; dependency edges are written in the same transaction as the row."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create(self, task: Task, acyclic: bool = False) -> int:
        params = task_params(task)
        async with self._db.transaction() as conn:
            try:
                cur = await conn.execute(_INSERT_SQL, params)
            except sqlite3.IntegrityError as e:
                raise ConstraintError(
                    f"failed to insert task {task.uuid}: {e}",
                    entity="task",
                    identifier=task.uuid,
                ) from e
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            await write_edges(conn, task.uuid, task.depends_on, acyclic=acyclic)
        logger.debug("Task inserted id=%s uuid=%s deps=%s", rowid, task.uuid, len(task.depends_on))
        return int(rowid)

    async def get(self, task_id: int) -> Optional[Task]:
        row = await self._db.fetchone(f"SELECT {task_columns()} FROM tasks WHERE id = ?;", (task_id,))
        return row_to_task(row) if row else None

    async def get_by_uuid(self, uuid: str) -> Optional[Task]:
        row = await self._db.fetchone(f"SELECT {task_columns()} FROM tasks WHERE uuid = ?;", (uuid,))
        return row_to_task(row) if row else None

    async def update(self, task: Task, acyclic: bool = False) -> bool:
        # entry is immutable after create
        params = tuple(v for c, v in zip(WRITE_COLUMNS, task_params(task)) if c != "entry")
        async with self._db.transaction() as conn:
            try:
                cur = await conn.execute(_UPDATE_SQL, (*params, task.id))
            except sqlite3.IntegrityError as e:
                raise ConstraintError(
                    f"failed to update task {task.id}: {e}",
                    entity="task",
                    identifier=task.id,
                ) from e
            if cur.rowcount == 0:
                return False
            await conn.execute(CLEAR_EDGES_SQL, (task.uuid,))
            await write_edges(conn, task.uuid, task.depends_on, acyclic=acyclic)
        logger.debug("Task updated id=%s uuid=%s deps=%s", task.id, task.uuid, len(task.depends_on))
        return True

    async def delete(self, task_id: int) -> bool:
        n = await self._db.execute("DELETE FROM tasks WHERE id = ?;", (task_id,))
        return n > 0

    async def list(self, flt: TaskFilter) -> list[Task]:
        where, params = render_where(filter_conditions(flt))
        order = render_order(flt.sort_by, flt.sort_order, SORTABLE_COLUMNS, DEFAULT_ORDER)
        limit, limit_params = render_limit(flt.limit, flt.offset)
        try:
            rows = await self._db.fetchall(
                f"SELECT {task_columns()} FROM tasks{where}{order}{limit};",
                (*params, *limit_params),
            )
        except sqlite3.OperationalError as e:
            _raise_if_malformed_tags(e)
            raise
        return [row_to_task(r) for r in rows]

    async def count(self, flt: TaskFilter) -> int:
        where, params = render_where(filter_conditions(flt))
        try:
            row = await self._db.fetchone(f"SELECT COUNT(*) AS count FROM tasks{where};", params)
        except sqlite3.OperationalError as e:
            _raise_if_malformed_tags(e)
            raise
        return int(row["count"]) if row else 0

    async def list_without_priority(self) -> list[Task]:
        rows = await self._db.fetchall(
            f"""
            SELECT {task_columns()}
            FROM tasks
            WHERE priority = '' OR priority IS NULL
            ORDER BY {DEFAULT_ORDER};
            """
        )
        return [row_to_task(r) for r in rows]

    async def status_summary(self) -> dict[str, int]:
        rows = await self._db.fetchall(
            "SELECT status, COUNT(*) AS count FROM tasks GROUP BY status ORDER BY status;"
        )
        return {r["status"]: int(r["count"]) for r in rows}

    async def priority_summary(self) -> dict[str, int]:
        rows = await self._db.fetchall(
            """
            SELECT
                CASE
                    WHEN priority = '' OR priority IS NULL THEN ?
                    ELSE priority
                END AS priority_group,
                COUNT(*) AS count
            FROM tasks
            GROUP BY priority_group
            ORDER BY priority_group;
            """,
            (NO_PRIORITY,),
        )
        return {r["priority_group"]: int(r["count"]) for r in rows}

    async def projects(self) -> list[ProjectSummary]:
        rows = await self._db.fetchall(
            """
            SELECT project, COUNT(*) AS count
            FROM tasks
            WHERE project != '' AND project IS NOT NULL
            GROUP BY project
            ORDER BY project;
            """
        )
        return [ProjectSummary(name=r["project"], task_count=int(r["count"])) for r in rows]

    async def contexts(self) -> list[ContextSummary]:
        rows = await self._db.fetchall(
            """
            SELECT context, COUNT(*) AS count
            FROM tasks
            WHERE context != '' AND context IS NOT NULL
            GROUP BY context
            ORDER BY context;
            """
        )
        return [ContextSummary(name=r["context"], task_count=int(r["count"])) for r in rows]

    async def tags(self) -> list[TagSummary]:
        rows = await self._db.fetchall("SELECT tags FROM tasks WHERE tags IS NOT NULL AND tags != '';")
        counts: Counter[str] = Counter()
        for r in rows:
            # a tag listed twice on one task still counts that task once
            counts.update(set(decode_list("tags", r["tags"])))
        return [TagSummary(name=name, task_count=n) for name, n in sorted(counts.items())]
