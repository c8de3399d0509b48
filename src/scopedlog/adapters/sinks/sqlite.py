"""SQLite sink.

Each record is stored as one row: indexed timestamp, level and category
columns plus the full NDJSON body, so reads rebuild the complete record.
"""

import json
import sqlite3
from collections.abc import AsyncIterable
from typing import Any

import aiosqlite

from scopedlog.adapters.sinks.sqlite_base import (
    AsyncConnectionManager,
    SyncConnectionManager,
)
from scopedlog.core.encoding.ndjson import decode_record, encode_record
from scopedlog.core.levels import Severity
from scopedlog.core.models import LogRecord

_SCHEMA = """
CREATE TABLE IF NOT EXISTS log_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp REAL NOT NULL,
    level INTEGER NOT NULL,
    category TEXT NOT NULL,
    message TEXT NOT NULL,
    body TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_log_records_timestamp ON log_records(timestamp);
CREATE INDEX IF NOT EXISTS idx_log_records_level_timestamp
    ON log_records(level, timestamp);
"""

_INSERT = """
INSERT INTO log_records (timestamp, level, category, message, body)
VALUES (?, ?, ?, ?, ?)
"""

_SELECT = """
SELECT body FROM log_records
WHERE timestamp > ? AND level >= ?
ORDER BY timestamp ASC, id ASC
"""

_COUNT = "SELECT COUNT(*) FROM log_records"

_DELETE_BEFORE = "DELETE FROM log_records WHERE timestamp < ?"

_CLEAR = "DELETE FROM log_records"


def _to_row(record: LogRecord) -> tuple[Any, ...]:
    return (
        record.timestamp,
        int(record.level),
        record.category,
        record.message,
        json.dumps(encode_record(record), ensure_ascii=False),
    )


def _from_row(row: sqlite3.Row | aiosqlite.Row | tuple[Any, ...]) -> LogRecord:
    return decode_record(json.loads(row[0]))


def _min_level(level: Severity | None) -> int:
    return int(Severity.TRACE if level is None else level)


class SQLiteSink:
    """Persists records to a SQLite database.

    ``emit`` writes synchronously with ``sqlite3`` on the logging call path.
    ``read``, ``count``, ``delete_before`` and ``clear`` are async through
    ``aiosqlite``; ``read_sync`` and ``clear_sync`` serve non-async callers.

    For file databases sync and async sides share the file. For ``:memory:``
    they are separate in-memory databases, so records written by ``emit`` are
    only visible to ``read_sync``.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._async = AsyncConnectionManager(db_path, _SCHEMA)
        self._sync = SyncConnectionManager(db_path, _SCHEMA)

    def emit(self, record: LogRecord) -> None:
        with self._sync.connection() as conn:
            conn.execute(_INSERT, _to_row(record))
            conn.commit()

    async def read(
        self, since: float = 0, level: Severity | None = None
    ) -> AsyncIterable[LogRecord]:
        """Read records newer than ``since`` at or above ``level``.

        Returns records with timestamp > since, ordered by timestamp ascending.
        """
        async with self._async.connection() as db:
            async with db.execute(_SELECT, (since, _min_level(level))) as cursor:
                async for row in cursor:
                    yield _from_row(row)

    async def count(self) -> int:
        async with self._async.connection() as db:
            async with db.execute(_COUNT) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def delete_before(self, timestamp: float) -> int:
        """Delete records with timestamp < given value; returns rows deleted."""
        async with self._async.connection() as db:
            cursor = await db.execute(_DELETE_BEFORE, (timestamp,))
            deleted = cursor.rowcount
            await db.commit()
            return deleted

    async def clear(self) -> None:
        async with self._async.connection() as db:
            await db.execute(_CLEAR)
            await db.commit()

    def read_sync(self, since: float = 0, level: Severity | None = None) -> list[LogRecord]:
        """Synchronous read for non-async contexts."""
        with self._sync.connection() as conn:
            cursor = conn.execute(_SELECT, (since, _min_level(level)))
            return [_from_row(row) for row in cursor]

    def clear_sync(self) -> None:
        with self._sync.connection() as conn:
            conn.execute(_CLEAR)
            conn.commit()

    async def close(self) -> None:
        """Close persistent connections (for :memory: databases)."""
        await self._async.close()
        self._sync.close()

    def __repr__(self) -> str:
        return f"SQLiteSink({self._db_path!r})"
