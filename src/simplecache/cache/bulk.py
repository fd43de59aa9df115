"""
Multi-key cache operations.

Each bulk call iterates the single-key operations. Writing calls run inside
one backend transaction, so a failure part way through rolls back the keys
already written by that call.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from simplecache.cache.engine import ObjectCache
from simplecache.exceptions import InvalidArgumentError, NotFoundError
from simplecache.logging import get_logger, log_context

logger = get_logger(__name__)

T = TypeVar("T")


def _key_list(keys: Iterable[str]) -> list[str]:
    # A bare string is iterable too; refuse it rather than look up each character
    if isinstance(keys, (str, bytes)):
        raise InvalidArgumentError(
            "Expected a collection of keys, got a single string",
            context={"argument": "keys", "value": keys},
        )
    return list(keys)


class BulkObjectCache(ObjectCache):
    """Object cache with multi-key get, insert, invalidate and created-at."""

    async def get_many(self, keys: Iterable[str], type_: type[T]) -> dict[str, T]:
        """Get several values decoded as type_.

        Keys without an entry are left out of the result. Any other error
        stops the call.
        """
        results: dict[str, T] = {}
        for key in _key_list(keys):
            try:
                results[key] = await self.get(key, type_)
            except NotFoundError:
                continue
        return results

    async def insert_many(
        self,
        items: Mapping[str, Any],
        expiration: datetime | None = None,
        *,
        type_: Any = None,
    ) -> int:
        """Insert several values in mapping order as one transaction.

        Args:
            items: Key to value mapping.
            expiration: Expiration applied to every entry. None means never.
            type_: Type to store every value as. Defaults to each value's type.

        Returns:
            Total rows affected.
        """
        if not isinstance(items, Mapping):
            raise InvalidArgumentError(
                "Expected a mapping of keys to values",
                context={"argument": "items", "value": type(items).__name__},
            )

        inserted = 0
        with log_context(operation="insert_many"):
            async with self.backend.transaction():
                for key, value in items.items():
                    inserted += await self.insert(key, value, expiration, type_=type_)

            logger.debug("Inserted entries", count=inserted)
        return inserted

    async def invalidate_many(self, keys: Iterable[str], type_: Any) -> int:
        """Invalidate several keys stored as type_ as one transaction.

        Missing keys are skipped. A type mismatch or backend error rolls back
        the whole call.

        Returns:
            Total rows affected.
        """
        key_list = _key_list(keys)
        invalidated = 0
        with log_context(operation="invalidate_many"):
            async with self.backend.transaction():
                for key in key_list:
                    try:
                        invalidated += await self.invalidate(key, type_)
                    except NotFoundError:
                        continue

            logger.info("Invalidated entries", count=invalidated)
        return invalidated

    async def get_created_at_many(self, keys: Iterable[str]) -> dict[str, datetime | None]:
        """Get when each key was inserted; None for keys not cached."""
        return {key: await self.get_created_at(key) for key in _key_list(keys)}
