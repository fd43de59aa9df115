"""
Base classes for the object cache.

CacheProtocol is the asynchronous persistent key-value interface the engine
implements. Values are stored with a type tag derived from a caller-supplied
type; see simplecache.types.type_tag().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, TypeVar

T = TypeVar("T")


class CacheProtocol(ABC):
    """Abstract interface for object cache implementations."""

    @abstractmethod
    async def get(self, key: str, type_: type[T]) -> T:
        """Get a value, decoded as type_. Raises NotFoundError when absent."""
        ...

    @abstractmethod
    async def get_all(self, type_: type[T]) -> list[T]:
        """Get every value stored under type_'s tag."""
        ...

    @abstractmethod
    async def insert(
        self,
        key: str,
        value: Any,
        expiration: datetime | None = None,
        *,
        type_: Any = None,
    ) -> int:
        """Insert or replace a value. Returns rows affected."""
        ...

    @abstractmethod
    async def invalidate(self, key: str, type_: Any) -> int:
        """Remove a value stored under type_'s tag. Returns rows affected."""
        ...

    @abstractmethod
    async def invalidate_all(self, type_: Any = None) -> int:
        """Remove every value, or every value of one type. Returns rows affected."""
        ...

    @abstractmethod
    async def vacuum(self) -> int:
        """Remove expired values and reclaim space. Returns rows affected."""
        ...

    @abstractmethod
    async def flush(self) -> None:
        """Wait until previously issued inserts are durable."""
        ...

    @abstractmethod
    async def get_all_keys(self) -> list[str]:
        """List every key currently cached."""
        ...

    @abstractmethod
    async def get_created_at(self, key: str) -> datetime | None:
        """Get when key was inserted, or None."""
        ...
