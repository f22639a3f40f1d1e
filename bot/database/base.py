from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosqlite
import asyncpg

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DatabaseDsn:
    driver: str
    value: str


def parse_database_dsn(url: str) -> DatabaseDsn:
    if url.startswith("sqlite:///"):
        return DatabaseDsn(driver="sqlite", value=url.replace("sqlite:///", "", 1))
    if url.startswith(("postgresql://", "postgres://")):
        return DatabaseDsn(driver="postgresql", value=url)
    raise ValueError("Unsupported database URL. Use sqlite:/// or postgresql://")


def _qmark_to_dollar(query: str) -> str:
    idx = 0
    out: list[str] = []
    for char in query:
        if char == "?":
            idx += 1
            out.append(f"${idx}")
        else:
            out.append(char)
    return "".join(out)


class Database:
    """Thin async wrapper that speaks qmark-style SQL to either SQLite or PostgreSQL."""

    def __init__(self, url: str, timeout_seconds: int = 30, pool_min_size: int = 1, pool_max_size: int = 5) -> None:
        self._dsn = parse_database_dsn(url)
        self._timeout_seconds = timeout_seconds
        self._pool_min_size = pool_min_size
        self._pool_max_size = pool_max_size
        self._sqlite: aiosqlite.Connection | None = None
        self._pg_pool: asyncpg.Pool | None = None
        self._sqlite_lock = asyncio.Lock()

    @property
    def driver(self) -> str:
        return self._dsn.driver

    async def connect(self) -> None:
        if self.driver == "sqlite":
            sqlite_path = Path(self._dsn.value)
            sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            self._sqlite = await aiosqlite.connect(sqlite_path, timeout=self._timeout_seconds)
            self._sqlite.row_factory = aiosqlite.Row
            await self._sqlite.execute("PRAGMA journal_mode = WAL;")
            await self._sqlite.execute("PRAGMA foreign_keys = ON;")
            await self._sqlite.commit()
            LOGGER.info("Connected to SQLite: %s", sqlite_path)
            return
        self._pg_pool = await asyncpg.create_pool(
            dsn=self._dsn.value,
            min_size=self._pool_min_size,
            max_size=self._pool_max_size,
            timeout=self._timeout_seconds,
        )
        LOGGER.info("Connected to PostgreSQL")

    async def close(self) -> None:
        if self._sqlite:
            await self._sqlite.close()
            self._sqlite = None
        if self._pg_pool:
            await self._pg_pool.close()
            self._pg_pool = None

    def _require_sqlite(self) -> aiosqlite.Connection:
        if self._sqlite is None:
            raise RuntimeError("Database is not connected")
        return self._sqlite

    def _require_pool(self) -> asyncpg.Pool:
        if self._pg_pool is None:
            raise RuntimeError("Database is not connected")
        return self._pg_pool

    @staticmethod
    def _rowcount_from_status(status: str) -> int:
        # asyncpg reports e.g. "DELETE 1" or "INSERT 0 1"; the count is always last.
        try:
            return int(status.rsplit(" ", 1)[-1])
        except (ValueError, IndexError):
            return 0

    async def execute(self, query: str, params: Sequence[Any] | None = None) -> int:
        """Run a write statement and return the number of affected rows."""
        params = params or []
        if self.driver == "sqlite":
            conn = self._require_sqlite()
            async with self._sqlite_lock:
                cursor = await conn.execute(query, tuple(params))
                await conn.commit()
                return max(cursor.rowcount, 0)

        async with self._require_pool().acquire() as conn:
            status = await conn.execute(_qmark_to_dollar(query), *params)
        return self._rowcount_from_status(status)

    async def fetchone(self, query: str, params: Sequence[Any] | None = None) -> dict[str, Any] | None:
        params = params or []
        if self.driver == "sqlite":
            conn = self._require_sqlite()
            async with self._sqlite_lock:
                cursor = await conn.execute(query, tuple(params))
                row = await cursor.fetchone()
        else:
            async with self._require_pool().acquire() as conn:
                row = await conn.fetchrow(_qmark_to_dollar(query), *params)
        return dict(row) if row is not None else None

    async def fetchall(self, query: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        params = params or []
        if self.driver == "sqlite":
            conn = self._require_sqlite()
            async with self._sqlite_lock:
                cursor = await conn.execute(query, tuple(params))
                rows = await cursor.fetchall()
        else:
            async with self._require_pool().acquire() as conn:
                rows = await conn.fetch(_qmark_to_dollar(query), *params)
        return [dict(row) for row in rows]

    async def fetchval(self, query: str, params: Sequence[Any] | None = None, default: Any = None) -> Any:
        row = await self.fetchone(query, params)
        if not row:
            return default
        value = next(iter(row.values()))
        return default if value is None else value

    async def executescript(self, sql_script: str) -> None:
        if self.driver == "sqlite":
            conn = self._require_sqlite()
            async with self._sqlite_lock:
                await conn.executescript(sql_script)
                await conn.commit()
            return

        async with self._require_pool().acquire() as conn:
            await conn.execute(sql_script)
