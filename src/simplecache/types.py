"""
Core types for the object cache.

Provides:
- Entry: the single persisted record (key, type tag, payload, timestamps)
- NEVER: the expiration sentinel, the largest representable instant
- Instant helpers converting between aware datetimes and stored integers
- type_tag(): resolves the opaque type identifier stored with each entry
"""

from __future__ import annotations

import typing
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
NEVER = datetime.max.replace(tzinfo=timezone.utc)

_MICROSECOND = timedelta(microseconds=1)


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_instant(value: datetime) -> int:
    """Convert a datetime to integer microseconds since the Unix epoch."""
    return (ensure_utc(value) - EPOCH) // _MICROSECOND


def from_instant(value: int) -> datetime:
    """Convert stored microseconds back to an aware UTC datetime."""
    return EPOCH + timedelta(microseconds=value)


# Stored value of the expiration sentinel
NEVER_INSTANT = to_instant(NEVER)


def type_tag(type_: Any) -> str:
    """Resolve the type tag for a caller-supplied type.

    Resolution order:
        - a str is taken verbatim
        - None stands for NoneType, as in annotations
        - a class attribute ``__cache_tag__`` (str) wins when present
        - parameterized generics (``list[int]``) use their repr
        - anything else uses ``module.qualname``

    Args:
        type_: A type, generic alias or explicit tag string.

    Returns:
        The tag string stored with the entry.
    """
    if isinstance(type_, str):
        return type_

    if type_ is None:
        type_ = type(None)

    explicit = getattr(type_, "__cache_tag__", None)
    if isinstance(explicit, str) and explicit:
        return explicit

    if typing.get_origin(type_) is not None:
        return repr(type_)

    module = getattr(type_, "__module__", None)
    qualname = getattr(type_, "__qualname__", None)
    if module and qualname:
        return f"{module}.{qualname}"

    return repr(type_)


@dataclass(frozen=True)
class Entry:
    """A persisted cache record.

    Attributes:
        key: Unique key, primary key of the store.
        type_tag: Opaque identifier of the type the value was stored as.
        payload: Encoded value bytes.
        created_at: When the entry was (last) inserted, UTC.
        expiration: When the entry becomes eligible for vacuum, UTC.
            NEVER means the entry never expires.
    """

    key: str
    type_tag: str
    payload: bytes
    created_at: datetime
    expiration: datetime = NEVER

    @property
    def never_expires(self) -> bool:
        """Whether the entry holds the expiration sentinel."""
        return self.expiration == NEVER
