"""
Cache package.

This package provides:
- CacheProtocol (base.py): the asynchronous object cache interface
- ObjectCache (engine.py): single-key operations, vacuum and invalidation
- BulkObjectCache (bulk.py): multi-key variants
"""

from simplecache.cache.base import CacheProtocol
from simplecache.cache.bulk import BulkObjectCache
from simplecache.cache.engine import ObjectCache

__all__ = ["BulkObjectCache", "CacheProtocol", "ObjectCache"]
