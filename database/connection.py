"""SQLite connection pool backing the document store."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Set

import aiosqlite

from core.exceptions import ConnectionPoolError
from core.logger import get_logger

logger = get_logger(__name__)


class OptimizedSQLitePool:
    """Fixed-size aiosqlite connection pool.

    Connections are handed out through an ``asyncio.Queue`` so waiters are
    woken in order and a released connection is never lost. A connection
    flagged with ``discard`` is closed on release and replaced by a fresh one.
    """

    def __init__(self, database_path: str, pool_size: int = 5, busy_timeout_ms: int = 5000) -> None:
        self.database_path = Path(database_path)
        self.pool_size = pool_size
        self.busy_timeout_ms = busy_timeout_ms
        self._all: List[aiosqlite.Connection] = []
        self._idle: "asyncio.Queue[aiosqlite.Connection]" = asyncio.Queue()
        self._discarded: Set[aiosqlite.Connection] = set()
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def size(self) -> int:
        return len(self._all)

    async def init_pool(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            if not self.database_path.parent.exists():
                self.database_path.parent.mkdir(parents=True, exist_ok=True)

            try:
                for _ in range(self.pool_size):
                    conn = await self._open()
                    self._all.append(conn)
                    self._idle.put_nowait(conn)
            except Exception as exc:
                await self._close_all()
                raise ConnectionPoolError(f"Failed to open {self.database_path}: {exc}") from exc

            self._initialized = True

    async def close(self) -> None:
        async with self._init_lock:
            await self._close_all()
            self._initialized = False

    async def _close_all(self) -> None:
        while self._all:
            conn = self._all.pop()
            await conn.close()
        self._discarded.clear()
        self._idle = asyncio.Queue()

    async def _open(self) -> aiosqlite.Connection:
        # Autocommit mode; the store issues BEGIN/COMMIT itself
        conn = await aiosqlite.connect(self.database_path.as_posix(), isolation_level=None)
        try:
            await self._apply_pragma(conn)
        except BaseException:
            await conn.close()
            raise
        return conn

    async def _apply_pragma(self, conn: aiosqlite.Connection) -> None:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA synchronous=NORMAL")
        await conn.execute("PRAGMA temp_store=MEMORY")
        await conn.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms}")

    def discard(self, conn: aiosqlite.Connection) -> None:
        """Mark a checked-out connection as unusable; it is replaced on release."""
        self._discarded.add(conn)

    async def _replace(self, conn: aiosqlite.Connection) -> None:
        self._discarded.discard(conn)
        if conn in self._all:
            self._all.remove(conn)
        try:
            await conn.close()
        except Exception as exc:
            logger.warning(f"Error closing discarded connection: {exc}")
        try:
            fresh = await self._open()
        except Exception as exc:
            logger.error(
                f"Failed to replace discarded connection, pool shrinks to {len(self._all)}: {exc}",
                exc_info=True,
            )
            return
        self._all.append(fresh)
        self._idle.put_nowait(fresh)
        logger.warning("Replaced a discarded database connection")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        if not self._initialized:
            await self.init_pool()
        conn = await self._idle.get()
        try:
            yield conn
        finally:
            if conn in self._discarded:
                await self._replace(conn)
            else:
                self._idle.put_nowait(conn)
