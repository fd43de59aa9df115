"""
Storage backend contract.

The cache engine talks to durable storage only through StorageBackend:
find/insert-or-replace/delete of single entries, lookup by type tag, raw
statements for bulk deletes, and lifecycle hooks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Sequence

from simplecache.types import Entry

ENTRY_TABLE = "cache_entries"


class StorageBackend(ABC):
    """Abstract interface for durable entry storage.

    Implementations own a single connection, open it lazily on first use
    and reopen it lazily after close().
    """

    @abstractmethod
    async def ensure_schema(self) -> None:
        """Create the entry table if absent. Idempotent."""
        ...

    @abstractmethod
    async def find_by_key(self, key: str) -> Entry | None:
        """Get the entry stored under key, or None."""
        ...

    @abstractmethod
    async def insert_or_replace(self, entry: Entry) -> int:
        """Upsert an entry. Returns rows affected (0 or 1)."""
        ...

    @abstractmethod
    async def delete(self, entry: Entry) -> int:
        """Delete an entry by key. Returns rows affected."""
        ...

    @abstractmethod
    async def query(self, type_tag: str | None = None) -> list[Entry]:
        """List entries with the given type tag, or all entries when None."""
        ...

    @abstractmethod
    async def keys(self) -> list[str]:
        """List every key currently stored."""
        ...

    @abstractmethod
    async def execute_raw(self, statement: str, params: Sequence[Any] = ()) -> int:
        """Execute a raw write statement. Returns rows affected."""
        ...

    @abstractmethod
    async def reclaim(self) -> None:
        """Reclaim space freed by deleted entries."""
        ...

    @abstractmethod
    async def flush(self) -> None:
        """Block until previously issued writes are durable."""
        ...

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Group writes so they commit or roll back together."""
        ...

    @abstractmethod
    async def stats(self) -> dict[str, Any]:
        """Get entry totals and per-type-tag counts."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. The next call reopens it."""
        ...

    async def __aenter__(self) -> StorageBackend:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
