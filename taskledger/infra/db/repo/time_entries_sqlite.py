from __future__ import annotations

import logging
import sqlite3
from typing import Optional

import aiosqlite

from taskledger.domain.common.errors import ConflictError, ConstraintError
from taskledger.domain.common.time import from_iso, from_iso_opt
from taskledger.domain.tracking.models import MSG_ALREADY_ACTIVE, TimeEntry
from taskledger.domain.tracking.ports import TimeEntryRepository
from taskledger.infra.db.connection import Database

logger = logging.getLogger(__name__)

_COLUMNS = "id, task_id, start_time, end_time, duration_seconds, description, created, modified"


class TimeEntrySqliteRepo(TimeEntryRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert_active(
        self,
        task_id: int,
        start_at_iso: str,
        description: str,
        created_at_iso: str,
    ) -> int:
        try:
            return await self._db.insert(
                """
                INSERT INTO time_entries(
                  task_id, start_time, end_time, duration_seconds,
                  description, created, modified
                ) VALUES (?, ?, NULL, NULL, ?, ?, ?);
                """,
                (task_id, start_at_iso, description or "", created_at_iso, created_at_iso),
            )
        except sqlite3.IntegrityError as e:
            # idx_time_entries_one_active: lost a race against another start
            if "UNIQUE" in str(e):
                logger.warning("Concurrent start rejected by unique index task_id=%s", task_id)
                raise ConflictError(MSG_ALREADY_ACTIVE, entity="task", identifier=task_id) from e
            raise ConstraintError(
                f"failed to create time entry for task {task_id}: {e}",
                entity="task",
                identifier=task_id,
            ) from e

    async def get(self, entry_id: int) -> Optional[TimeEntry]:
        row = await self._db.fetchone(f"SELECT {_COLUMNS} FROM time_entries WHERE id = ?;", (entry_id,))
        return self._row_to_entry(row) if row else None

    async def get_active(self, task_id: int) -> Optional[TimeEntry]:
        row = await self._db.fetchone(
            f"""
            SELECT {_COLUMNS}
            FROM time_entries
            WHERE task_id = ? AND end_time IS NULL
            ORDER BY start_time DESC
            LIMIT 1;
            """,
            (task_id,),
        )
        return self._row_to_entry(row) if row else None

    async def mark_stopped(
        self,
        entry_id: int,
        end_at_iso: str,
        duration_seconds: int,
        updated_at_iso: str,
    ) -> bool:
        n = await self._db.execute(
            """
            UPDATE time_entries
            SET end_time = ?,
                duration_seconds = ?,
                modified = ?
            WHERE id = ? AND end_time IS NULL;
            """,
            (end_at_iso, duration_seconds, updated_at_iso, entry_id),
        )
        return n == 1

    async def list_by_task(self, task_id: int) -> list[TimeEntry]:
        rows = await self._db.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM time_entries
            WHERE task_id = ?
            ORDER BY start_time DESC, id DESC;
            """,
            (task_id,),
        )
        return [self._row_to_entry(r) for r in rows]

    async def list_between(self, start_iso: str, end_iso: str) -> list[TimeEntry]:
        rows = await self._db.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM time_entries
            WHERE start_time >= ? AND start_time <= ?
            ORDER BY start_time DESC, id DESC;
            """,
            (start_iso, end_iso),
        )
        return [self._row_to_entry(r) for r in rows]

    async def delete(self, entry_id: int) -> bool:
        n = await self._db.execute("DELETE FROM time_entries WHERE id = ?;", (entry_id,))
        return n > 0

    def _row_to_entry(self, row: aiosqlite.Row) -> TimeEntry:
        return TimeEntry(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            start_time=from_iso(row["start_time"]),
            end_time=from_iso_opt(row["end_time"]),
            duration_seconds=int(row["duration_seconds"] or 0),
            description=row["description"] or "",
            created=from_iso(row["created"]),
            modified=from_iso(row["modified"]),
        )
