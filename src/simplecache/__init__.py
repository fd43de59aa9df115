"""
SimpleCache: a persistent asynchronous key-value object cache.

Typed values are stored under string keys in SQLite, with creation time,
optional expiration, type-scoped invalidation and vacuum of expired entries.
"""

from simplecache.cache import BulkObjectCache, CacheProtocol, ObjectCache
from simplecache.codec import ByteTransform, Codec, compression, encryption, generate_encryption_key
from simplecache.exceptions import (
    CacheError,
    ConfigurationError,
    DecodeError,
    InvalidArgumentError,
    NotFoundError,
    TypeMismatchError,
)
from simplecache.storage import SQLiteBackend, StorageBackend
from simplecache.types import NEVER, Entry, type_tag

__version__ = "0.1.0"

__all__ = [
    "NEVER",
    "BulkObjectCache",
    "ByteTransform",
    "CacheError",
    "CacheProtocol",
    "Codec",
    "ConfigurationError",
    "DecodeError",
    "Entry",
    "InvalidArgumentError",
    "NotFoundError",
    "ObjectCache",
    "SQLiteBackend",
    "StorageBackend",
    "TypeMismatchError",
    "compression",
    "encryption",
    "generate_encryption_key",
    "type_tag",
]
