# taskledger/infra/db/connection.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

import aiosqlite

from taskledger.domain.common.errors import DeadlineExceededError

logger = logging.getLogger(__name__)


class Database:
    """
    Async SQLite helper:
    - opens a new connection per operation (simple + safe)
    - sets row_factory to aiosqlite.Row
    - enables WAL + foreign keys
    - optional per-operation deadline (DeadlineExceededError when exceeded)

    Cancelling the calling task aborts the operation; CancelledError is not caught.
    """

    def __init__(self, path: str, op_timeout: Optional[float] = None) -> None:
        self._path = path
        self._op_timeout = op_timeout

    @asynccontextmanager
    async def _deadline(self) -> AsyncIterator[None]:
        if self._op_timeout is None:
            yield
            return
        try:
            async with asyncio.timeout(self._op_timeout):
                yield
        except TimeoutError as e:
            logger.warning("Store operation timed out after %ss db=%s", self._op_timeout, self._path)
            raise DeadlineExceededError(self._op_timeout) from e

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            yield db

    async def executescript(self, sql: str) -> None:
        async with self._deadline(), self._connect() as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.executescript(sql)
            await db.commit()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one statement and return the number of rows affected."""
        async with self._deadline(), self._connect() as db:
            cur = await db.execute(sql, params)
            await db.commit()
            return cur.rowcount

    async def insert(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one INSERT and return the generated rowid."""
        async with self._deadline(), self._connect() as db:
            cur = await db.execute(sql, params)
            await db.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for insert")
            return int(rowid)

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        async with self._deadline(), self._connect() as db:
            cur = await db.execute(sql, params)
            return await cur.fetchone()

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        async with self._deadline(), self._connect() as db:
            cur = await db.execute(sql, params)
            return list(await cur.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        One connection inside BEGIN IMMEDIATE.
        Commits when the block exits normally, rolls back on any exception (cancellation included).
        """
        async with self._deadline(), self._connect() as db:
            await db.execute("BEGIN IMMEDIATE;")
            try:
                yield db
            except BaseException:
                await db.rollback()
                raise
            await db.commit()
