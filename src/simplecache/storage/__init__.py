"""
Storage package for durable entry persistence.

This package provides:
- StorageBackend (base.py): the contract the cache engine depends on
- SQLiteBackend (sqlite.py): aiosqlite implementation over a single table
"""

from simplecache.storage.base import ENTRY_TABLE, StorageBackend
from simplecache.storage.sqlite import SQLiteBackend

__all__ = ["ENTRY_TABLE", "SQLiteBackend", "StorageBackend"]
