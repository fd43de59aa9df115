"""
Object cache engine.

ObjectCache stores typed values under string keys in a StorageBackend,
tracking when each entry was created and when it expires. Expired entries
are not hidden from reads; they are removed by vacuum().
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, TypeVar

from simplecache.cache.base import CacheProtocol
from simplecache.codec import Codec
from simplecache.config import Settings, get_settings
from simplecache.exceptions import InvalidArgumentError, NotFoundError, TypeMismatchError
from simplecache.logging import get_logger, log_context
from simplecache.storage.base import ENTRY_TABLE, StorageBackend
from simplecache.storage.sqlite import SQLiteBackend
from simplecache.types import NEVER, Entry, ensure_utc, to_instant, type_tag, utc_now

logger = get_logger(__name__)

T = TypeVar("T")


def check_key(key: Any) -> str:
    """Reject keys that are not non-empty strings."""
    if not isinstance(key, str) or not key:
        raise InvalidArgumentError(
            "Cache key must be a non-empty string",
            context={"argument": "key", "value": key},
        )
    return key


def check_expiration(expiration: Any) -> datetime:
    """Normalize an optional expiration to an aware UTC datetime."""
    if expiration is None:
        return NEVER
    if not isinstance(expiration, datetime):
        raise InvalidArgumentError(
            "Expiration must be a datetime",
            context={"argument": "expiration", "value": expiration},
        )
    return ensure_utc(expiration)


class ObjectCache(CacheProtocol):
    """Asynchronous persistent key-value object cache.

    Several caches may share one backend; the backend owns the connection
    and serializes writes. The cache itself takes no locks.

    Example:
        >>> async with ObjectCache(SQLiteBackend("objects.db")) as cache:
        ...     await cache.insert("answer", 42)
        ...     await cache.get("answer", int)
        42
    """

    def __init__(
        self,
        backend: StorageBackend,
        codec: Codec | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize cache.

        Args:
            backend: Storage backend holding the entries.
            codec: Value codec. Defaults to a codec without transforms.
            clock: Source of "now" for created_at and vacuum.
        """
        self.backend = backend
        self.codec = codec or Codec()
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ObjectCache:
        """Create a cache with backend and codec configured from settings."""
        settings = settings or get_settings()
        return cls(SQLiteBackend.from_settings(settings), Codec.from_settings(settings))

    async def __aenter__(self) -> ObjectCache:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the backend connection. The next call reopens it."""
        await self.backend.close()

    async def get(self, key: str, type_: type[T]) -> T:
        """Get a value decoded as type_.

        The stored type tag is not compared with type_; decoding alone
        decides whether the payload fits.

        Args:
            key: The key to look up.
            type_: The type to decode the payload into.

        Returns:
            The decoded value.

        Raises:
            NotFoundError: If no entry exists for key.
            DecodeError: If the payload does not decode as type_.
        """
        check_key(key)
        entry = await self.backend.find_by_key(key)
        if entry is None:
            raise NotFoundError("Key not found in cache", context={"key": key})

        logger.debug("Cache hit", key=key, type_tag=entry.type_tag)
        return self.codec.decode(entry.payload, type_)

    async def get_all(self, type_: type[T]) -> list[T]:
        """Get every value stored with type_'s tag, ordered by key."""
        entries = await self.backend.query(type_tag(type_))
        return [self.codec.decode(entry.payload, type_) for entry in entries]

    async def insert(
        self,
        key: str,
        value: Any,
        expiration: datetime | None = None,
        *,
        type_: Any = None,
    ) -> int:
        """Insert a value, replacing any entry with the same key.

        Args:
            key: The key to store the value under.
            value: The value to store.
            expiration: When the entry becomes eligible for vacuum. Naive
                datetimes are taken as UTC. None means never.
            type_: Type to store the value as. Defaults to type(value).

        Returns:
            Rows affected (0 or 1).
        """
        check_key(key)
        expires = check_expiration(expiration)
        target = type(value) if type_ is None else type_

        entry = Entry(
            key=key,
            type_tag=type_tag(target),
            payload=self.codec.encode(value, target),
            created_at=ensure_utc(self._clock()),
            expiration=expires,
        )
        inserted = await self.backend.insert_or_replace(entry)

        logger.debug(
            "Inserted entry",
            key=key,
            type_tag=entry.type_tag,
            size=len(entry.payload),
            expires=None if entry.never_expires else expires.isoformat(),
        )
        return inserted

    async def invalidate(self, key: str, type_: Any) -> int:
        """Remove the entry for key after checking its type tag.

        Args:
            key: The key to remove.
            type_: The type (or tag) the entry is expected to be stored as.

        Returns:
            Rows affected.

        Raises:
            NotFoundError: If no entry exists for key.
            TypeMismatchError: If the entry was stored under another type tag.
                The entry is left in place.
        """
        check_key(key)
        entry = await self.backend.find_by_key(key)
        if entry is None:
            raise NotFoundError("Key not found in cache", context={"key": key})

        requested = type_tag(type_)
        if entry.type_tag != requested:
            raise TypeMismatchError(
                "Entry was stored under a different type",
                context={"key": key, "stored": entry.type_tag, "requested": requested},
            )

        deleted = await self.backend.delete(entry)
        logger.debug("Invalidated entry", key=key, type_tag=requested)
        return deleted

    async def invalidate_all(self, type_: Any = None) -> int:
        """Remove every entry, or every entry stored with type_'s tag.

        Returns:
            Rows affected.
        """
        with log_context(operation="invalidate_all"):
            if type_ is None:
                deleted = await self.backend.execute_raw(f"DELETE FROM {ENTRY_TABLE}")
                logger.info("Invalidated all entries", deleted=deleted)
                return deleted

            tag = type_tag(type_)
            deleted = await self.backend.execute_raw(
                f"DELETE FROM {ENTRY_TABLE} WHERE type_tag = ?", (tag,)
            )
            logger.info("Invalidated entries by type", type_tag=tag, deleted=deleted)
            return deleted

    async def vacuum(self) -> int:
        """Remove expired entries and reclaim storage space.

        "Now" is read once; entries expiring strictly before it are removed.
        Entries that never expire are kept. This rebuilds the database file
        and is expensive, so run it when the cache is quiet.

        Returns:
            Number of entries removed.
        """
        with log_context(operation="vacuum"):
            now = ensure_utc(self._clock())
            deleted = await self.backend.execute_raw(
                f"DELETE FROM {ENTRY_TABLE} WHERE expiration < ?", (to_instant(now),)
            )
            await self.backend.reclaim()
            logger.info("Vacuumed cache", deleted=deleted, now=now.isoformat())
            return deleted

    async def flush(self) -> None:
        """Wait until previously issued inserts are on stable storage."""
        await self.backend.flush()

    async def get_all_keys(self) -> list[str]:
        """List every key currently cached.

        Best effort: concurrent writers may add or remove keys while the
        list is being read.
        """
        return await self.backend.keys()

    async def get_created_at(self, key: str) -> datetime | None:
        """Get when key was last inserted, or None if it is not cached."""
        check_key(key)
        entry = await self.backend.find_by_key(key)
        return entry.created_at if entry else None
