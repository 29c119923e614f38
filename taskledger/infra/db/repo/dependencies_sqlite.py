from __future__ import annotations

import logging
import sqlite3
from typing import Sequence

import aiosqlite

from taskledger.domain.common.errors import ConstraintError
from taskledger.domain.tasks.models import Task
from taskledger.domain.tasks.ports import DependencyRepository
from taskledger.domain.tasks.rules import reject_cycle
from taskledger.infra.db.connection import Database
from taskledger.infra.db.repo.task_rows import row_to_task, task_columns

logger = logging.getLogger(__name__)

INSERT_EDGE_SQL = "INSERT OR IGNORE INTO task_dependencies (task_uuid, depends_on_uuid) VALUES (?, ?);"
CLEAR_EDGES_SQL = "DELETE FROM task_dependencies WHERE task_uuid = ?;"
PATH_EXISTS_SQL = """
WITH RECURSIVE reach(uuid) AS (
    SELECT ?
    UNION
    SELECT d.depends_on_uuid
    FROM task_dependencies d
    JOIN reach r ON d.task_uuid = r.uuid
)
SELECT 1 FROM reach WHERE uuid = ? LIMIT 1;
"""


async def path_exists(conn: aiosqlite.Connection, from_uuid: str, to_uuid: str) -> bool:
    """True if following depends-on edges from `from_uuid` reaches `to_uuid`."""
    cur = await conn.execute(PATH_EXISTS_SQL, (from_uuid, to_uuid))
    return await cur.fetchone() is not None


async def write_edges(
    conn: aiosqlite.Connection,
    task_uuid: str,
    depends_on: Sequence[str],
    acyclic: bool = False,
) -> None:
    """
    Insert edges on an open connection (caller owns the transaction).

    With acyclic=True each edge is checked against the graph as seen inside
    that transaction, so a concurrent writer cannot slip in the reverse edge.
    """
    for dep in depends_on:
        if acyclic and await path_exists(conn, dep, task_uuid):
            logger.warning("Rejected dependency %s -> %s (acyclic)", task_uuid, dep)
            reject_cycle(task_uuid, dep)
        try:
            await conn.execute(INSERT_EDGE_SQL, (task_uuid, dep))
        except sqlite3.IntegrityError as e:
            raise ConstraintError(
                f"failed to add dependency {task_uuid} -> {dep}: {e}",
                entity="task",
                identifier=dep,
            ) from e


class DependencySqliteRepo(DependencyRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def add(self, task_uuid: str, depends_on_uuid: str, acyclic: bool = False) -> None:
        async with self._db.transaction() as conn:
            await write_edges(conn, task_uuid, [depends_on_uuid], acyclic=acyclic)
        logger.debug("Dependency added %s -> %s", task_uuid, depends_on_uuid)

    async def remove(self, task_uuid: str, depends_on_uuid: str) -> int:
        return await self._db.execute(
            "DELETE FROM task_dependencies WHERE task_uuid = ? AND depends_on_uuid = ?;",
            (task_uuid, depends_on_uuid),
        )

    async def clear(self, task_uuid: str) -> int:
        return await self._db.execute(CLEAR_EDGES_SQL, (task_uuid,))

    async def list_for(self, task_uuid: str) -> list[str]:
        rows = await self._db.fetchall(
            "SELECT depends_on_uuid FROM task_dependencies WHERE task_uuid = ? ORDER BY id;",
            (task_uuid,),
        )
        return [r["depends_on_uuid"] for r in rows]

    async def list_for_many(self, task_uuids: Sequence[str]) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {u: [] for u in task_uuids}
        if not out:
            return out
        placeholders = ",".join("?" for _ in out)
        rows = await self._db.fetchall(
            f"""
            SELECT task_uuid, depends_on_uuid
            FROM task_dependencies
            WHERE task_uuid IN ({placeholders})
            ORDER BY id;
            """,
            tuple(out),
        )
        for r in rows:
            out[r["task_uuid"]].append(r["depends_on_uuid"])
        return out

    async def list_dependents(self, blocking_uuid: str) -> list[Task]:
        rows = await self._db.fetchall(
            f"""
            SELECT {task_columns("t")}
            FROM tasks t
            JOIN task_dependencies d ON t.uuid = d.task_uuid
            WHERE d.depends_on_uuid = ?
            ORDER BY d.id;
            """,
            (blocking_uuid,),
        )
        return [row_to_task(r) for r in rows]
