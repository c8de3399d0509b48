"""SQLite connection managers shared by the SQLite sink.

Writes happen on the logging call path and use the blocking ``sqlite3``
module; reads are async through ``aiosqlite``. For file databases both sides
open the same file. For ``:memory:`` each manager keeps its own persistent
connection, so sync and async sides see SEPARATE databases.
"""

import asyncio
import sqlite3
import threading
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager

import aiosqlite

MEMORY = ":memory:"


class AsyncConnectionManager:
    """Opens aiosqlite connections and applies the schema once."""

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._ready = False
        self._ready_lock: asyncio.Lock | None = None
        self._memory_conn: aiosqlite.Connection | None = None

    def _lock(self) -> asyncio.Lock:
        # Created lazily so the manager can be built outside an event loop
        if self._ready_lock is None:
            self._ready_lock = asyncio.Lock()
        return self._ready_lock

    async def _prepare(self) -> None:
        if self._ready:
            return
        async with self._lock():
            if self._ready:
                return
            if self._db_path == MEMORY:
                self._memory_conn = await aiosqlite.connect(MEMORY)
                await self._memory_conn.executescript(self._schema)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            self._ready = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection; file connections are closed afterwards."""
        await self._prepare()
        if self._db_path == MEMORY:
            if self._memory_conn is None:
                raise RuntimeError("In-memory database connection is closed")
            yield self._memory_conn
            return
        db = await aiosqlite.connect(self._db_path)
        try:
            yield db
        finally:
            await db.close()

    async def close(self) -> None:
        if self._memory_conn is not None:
            await self._memory_conn.close()
            self._memory_conn = None
            self._ready = False


class SyncConnectionManager:
    """Opens sqlite3 connections and serializes access across threads.

    A single lock guards schema setup and every use of a connection, since
    records may be emitted from many threads at once.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._ready = False
        self._lock = threading.RLock()
        self._memory_conn: sqlite3.Connection | None = None

    def _prepare(self) -> None:
        if self._ready:
            return
        if self._db_path == MEMORY:
            self._memory_conn = sqlite3.connect(MEMORY, check_same_thread=False)
            self._memory_conn.executescript(self._schema)
        else:
            with sqlite3.connect(self._db_path) as db:
                db.execute("PRAGMA journal_mode=WAL")
                db.executescript(self._schema)
        self._ready = True

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection while holding the manager lock."""
        with self._lock:
            self._prepare()
            if self._db_path == MEMORY:
                if self._memory_conn is None:
                    raise RuntimeError("In-memory database connection is closed")
                yield self._memory_conn
                return
            conn = sqlite3.connect(self._db_path)
            try:
                yield conn
            finally:
                conn.close()

    def close(self) -> None:
        with self._lock:
            if self._memory_conn is not None:
                self._memory_conn.close()
                self._memory_conn = None
                self._ready = False
