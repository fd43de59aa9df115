"""
SQLite storage backend using aiosqlite.

One connection per backend, opened lazily on first use and reused until
close(). The connection runs in autocommit mode: single writes commit on
their own, transaction() groups writes under an explicit BEGIN/COMMIT.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, AsyncIterator, Sequence

import aiosqlite

from simplecache.config import Settings, get_settings
from simplecache.exceptions import ConfigurationError
from simplecache.logging import get_logger, log_context
from simplecache.storage.base import ENTRY_TABLE, StorageBackend
from simplecache.types import NEVER_INSTANT, Entry, from_instant, to_instant

logger = get_logger(__name__)

MEMORY = ":memory:"
JOURNAL_MODES = frozenset({"WAL", "DELETE", "TRUNCATE", "PERSIST", "MEMORY"})

# ids of the backends whose transaction the current task is inside
_open_transactions: ContextVar[frozenset[int]] = ContextVar(
    "open_transactions", default=frozenset()
)


class SQLiteBackend(StorageBackend):
    """Entry storage in a single SQLite table.

    Example:
        >>> backend = SQLiteBackend(".cache/objects.db")
        >>> entry = await backend.find_by_key("user:1")
        >>> await backend.close()
    """

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        journal_mode: str = "WAL",
        busy_timeout: float = 5.0,
    ) -> None:
        """Initialize backend. No connection is opened until first use.

        Args:
            db_path: Database file, or ":memory:". Falls back to
                CACHE_DB_PATH from settings when None.
            journal_mode: SQLite journal mode.
            busy_timeout: Seconds to wait when the database is locked.
        """
        journal_mode = journal_mode.upper()
        if journal_mode not in JOURNAL_MODES:
            raise ConfigurationError(
                "Unsupported journal mode",
                context={"journal_mode": journal_mode},
            )
        self.db_path = db_path
        self.journal_mode = journal_mode
        self.busy_timeout = busy_timeout
        self._db: aiosqlite.Connection | None = None
        self._open_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> SQLiteBackend:
        """Create a backend configured from settings."""
        settings = settings or get_settings()
        return cls(
            settings.CACHE_DB_PATH,
            journal_mode=settings.CACHE_JOURNAL_MODE,
            busy_timeout=settings.CACHE_BUSY_TIMEOUT,
        )

    @property
    def is_open(self) -> bool:
        """Whether a connection is currently open."""
        return self._db is not None

    def _resolve_path(self) -> str:
        path = self.db_path
        if path is None:
            path = get_settings().CACHE_DB_PATH
        if path is None or not str(path).strip():
            raise ConfigurationError(
                "Cache database location is not set. "
                "Pass db_path or set CACHE_DB_PATH."
            )
        return str(path)

    async def _connection(self) -> aiosqlite.Connection:
        if self._db is not None:
            return self._db

        async with self._open_lock:
            if self._db is None:
                self._db = await self._open()
        return self._db

    async def _open(self) -> aiosqlite.Connection:
        path = self._resolve_path()
        if path != MEMORY:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        db = await aiosqlite.connect(path, isolation_level=None, timeout=self.busy_timeout)
        db.row_factory = aiosqlite.Row
        try:
            await db.execute(f"PRAGMA journal_mode = {self.journal_mode}")
            await self._create_schema(db)
        except BaseException:
            await db.close()
            raise

        with log_context(database=path):
            logger.info("Cache database opened", journal_mode=self.journal_mode)
        return db

    async def _create_schema(self, db: aiosqlite.Connection) -> None:
        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS {ENTRY_TABLE} (
                key TEXT PRIMARY KEY,
                type_tag TEXT NOT NULL,
                payload BLOB NOT NULL,
                created_at INTEGER NOT NULL,
                expiration INTEGER NOT NULL DEFAULT {NEVER_INSTANT}
            )
        """)
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS idx_entries_type_tag ON {ENTRY_TABLE}(type_tag)"
        )
        await db.execute(
            f"CREATE INDEX IF NOT EXISTS idx_entries_expiration ON {ENTRY_TABLE}(expiration)"
        )

    async def ensure_schema(self) -> None:
        """Create the entry table and indexes if absent."""
        db = await self._connection()
        await self._create_schema(db)

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            db, self._db = self._db, None
            await db.close()
            logger.debug("Cache database closed")

    def _in_transaction(self) -> bool:
        return id(self) in _open_transactions.get()

    @asynccontextmanager
    async def _guarded(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the connection once no other task's transaction is open.

        The connection is shared, so uncommitted rows of an open transaction
        are visible to every statement run on it. Callers outside that
        transaction wait for it to end.
        """
        db = await self._connection()
        if self._in_transaction():
            yield db
            return

        async with self._write_lock:
            yield db

    async def _write(self, statement: str, params: Sequence[Any] = ()) -> int:
        async with self._guarded() as db:
            async with db.execute(statement, params) as cursor:
                return cursor.rowcount

    async def _fetch(self, statement: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        async with self._guarded() as db:
            async with db.execute(statement, params) as cursor:
                return list(await cursor.fetchall())

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run the enclosed writes as one transaction.

        Writes from the current task (and tasks it starts inside the block)
        join the transaction; other tasks' reads and writes wait for it.
        Nested calls join the outer transaction.
        """
        if self._in_transaction():
            yield
            return

        db = await self._connection()
        async with self._write_lock:
            token = _open_transactions.set(_open_transactions.get() | {id(self)})
            try:
                await db.execute("BEGIN IMMEDIATE")
                try:
                    yield
                except BaseException:
                    await db.execute("ROLLBACK")
                    logger.debug("Transaction rolled back")
                    raise
                await db.execute("COMMIT")
            finally:
                _open_transactions.reset(token)

    async def find_by_key(self, key: str) -> Entry | None:
        """Get the entry stored under key, or None."""
        rows = await self._fetch(f"SELECT * FROM {ENTRY_TABLE} WHERE key = ?", (key,))
        if not rows:
            return None

        return self._row_to_entry(rows[0])

    async def insert_or_replace(self, entry: Entry) -> int:
        """Upsert an entry, replacing every column of an existing row."""
        return await self._write(
            f"""
            INSERT OR REPLACE INTO {ENTRY_TABLE} (
                key, type_tag, payload, created_at, expiration
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                entry.key,
                entry.type_tag,
                entry.payload,
                to_instant(entry.created_at),
                to_instant(entry.expiration),
            ),
        )

    async def delete(self, entry: Entry) -> int:
        """Delete the row with the entry's key."""
        return await self._write(f"DELETE FROM {ENTRY_TABLE} WHERE key = ?", (entry.key,))

    async def query(self, type_tag: str | None = None) -> list[Entry]:
        """List entries with the given type tag, or all entries."""
        if type_tag is None:
            statement, params = f"SELECT * FROM {ENTRY_TABLE} ORDER BY key", ()
        else:
            statement = f"SELECT * FROM {ENTRY_TABLE} WHERE type_tag = ? ORDER BY key"
            params = (type_tag,)

        rows = await self._fetch(statement, params)
        return [self._row_to_entry(row) for row in rows]

    async def keys(self) -> list[str]:
        """List every stored key."""
        rows = await self._fetch(f"SELECT key FROM {ENTRY_TABLE} ORDER BY key")
        return [row[0] for row in rows]

    async def execute_raw(self, statement: str, params: Sequence[Any] = ()) -> int:
        """Execute a write statement and return rows affected."""
        return await self._write(statement, params)

    async def reclaim(self) -> None:
        """Rebuild the database file to release free pages."""
        await self._write("VACUUM")

    async def flush(self) -> None:
        """Wait for in-flight writes and checkpoint the WAL into the database.

        Inside a transaction this is a no-op: the transaction's commit is
        the durability point.
        """
        db = await self._connection()
        if self._in_transaction():
            return

        async with self._write_lock:
            async with db.execute("PRAGMA wal_checkpoint(FULL)") as cursor:
                await cursor.fetchall()

    async def count(self) -> int:
        """Get total count of entries."""
        rows = await self._fetch(f"SELECT COUNT(*) FROM {ENTRY_TABLE}")
        return rows[0][0] if rows else 0

    async def stats(self) -> dict[str, Any]:
        """Get statistics about stored entries.

        Returns:
            Dict with total, never-expiring and per-type-tag counts.
        """
        stats: dict[str, Any] = {}
        stats["total"] = await self.count()

        rows = await self._fetch(
            f"SELECT COUNT(*) FROM {ENTRY_TABLE} WHERE expiration = ?", (NEVER_INSTANT,)
        )
        stats["never_expiring"] = rows[0][0] if rows else 0

        rows = await self._fetch(
            f"SELECT type_tag, COUNT(*) FROM {ENTRY_TABLE} GROUP BY type_tag ORDER BY type_tag"
        )
        stats["by_type_tag"] = {row[0]: row[1] for row in rows}

        return stats

    def _row_to_entry(self, row: aiosqlite.Row) -> Entry:
        """Convert a database row to Entry dataclass."""
        return Entry(
            key=row["key"],
            type_tag=row["type_tag"],
            payload=bytes(row["payload"]),
            created_at=from_instant(row["created_at"]),
            expiration=from_instant(row["expiration"]),
        )
