"""
Pytest configuration and fixtures for cache tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import patch

import pytest
from pydantic import BaseModel

from simplecache.cache import BulkObjectCache
from simplecache.config import Settings, clear_settings_cache
from simplecache.storage import SQLiteBackend


class User(BaseModel):
    """Pydantic model used as a cached value."""

    name: str
    age: int


@dataclass
class Point:
    """Dataclass used as a cached value."""

    x: float
    y: float


class Tagged(BaseModel):
    """Model with an explicit type tag."""

    __cache_tag__ = "tagged-v1"

    label: str


class FakeClock:
    """Settable clock for created_at and vacuum tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    """Path of a fresh cache database."""
    return temp_dir / "cache" / "objects.db"


@pytest.fixture
def mock_env_vars(db_path: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "CACHE_DB_PATH": str(db_path),
        "CACHE_JOURNAL_MODE": "WAL",
        "CACHE_BUSY_TIMEOUT": "2.5",
        "CACHE_COMPRESSION_LEVEL": "",
        "CACHE_ENCRYPTION_KEY": "",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    clear_settings_cache()
    from simplecache.config import get_settings

    settings = get_settings()
    yield settings
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    """Provide a settable clock."""
    return FakeClock()


@pytest.fixture
async def backend(db_path: Path) -> AsyncGenerator[SQLiteBackend, None]:
    """Create a SQLite backend on a temporary file."""
    store = SQLiteBackend(db_path)
    yield store
    await store.close()


@pytest.fixture
async def cache(backend: SQLiteBackend, clock: FakeClock) -> BulkObjectCache:
    """Create a bulk cache over the temporary backend."""
    return BulkObjectCache(backend, clock=clock)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
