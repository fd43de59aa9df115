"""
Tests for multi-key cache operations.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeClock, User
from simplecache.cache import BulkObjectCache
from simplecache.exceptions import DecodeError, InvalidArgumentError, TypeMismatchError


class TestGetMany:
    """Test multi-key reads."""

    @pytest.mark.asyncio
    async def test_missing_keys_are_skipped(self, cache: BulkObjectCache) -> None:
        """Test that absent keys are left out of the result."""
        assert await cache.insert_many({"a": 1, "b": 2}) == 2

        result = await cache.get_many(["a", "b", "c"], int)

        assert result == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_decode_error_propagates(self, cache: BulkObjectCache) -> None:
        """Test that errors other than missing keys stop the call."""
        await cache.insert("a", 1)
        await cache.insert("b", "not a number")

        with pytest.raises(DecodeError):
            await cache.get_many(["a", "b"], int)

    @pytest.mark.asyncio
    async def test_single_string_is_rejected(self, cache: BulkObjectCache) -> None:
        """Test that a bare string is not treated as a key collection."""
        with pytest.raises(InvalidArgumentError):
            await cache.get_many("ab", int)

    @pytest.mark.asyncio
    async def test_accepts_any_iterable(self, cache: BulkObjectCache) -> None:
        """Test generators of keys."""
        await cache.insert_many({"k1": 1, "k2": 2})
        result = await cache.get_many((f"k{i}" for i in range(1, 4)), int)
        assert result == {"k1": 1, "k2": 2}


class TestInsertMany:
    """Test multi-key writes."""

    @pytest.mark.asyncio
    async def test_shared_expiration(self, cache: BulkObjectCache, clock: FakeClock) -> None:
        """Test that the expiration applies to every inserted entry."""
        expired = clock.now - timedelta(seconds=1)
        await cache.insert_many({"a": 1, "b": 2}, expired)
        await cache.insert("c", 3)

        assert await cache.vacuum() == 2
        assert await cache.get_all_keys() == ["c"]

    @pytest.mark.asyncio
    async def test_explicit_type(self, cache: BulkObjectCache) -> None:
        """Test storing every value under one declared type."""
        await cache.insert_many({"a": [1], "b": [2, 3]}, type_=list[int])
        assert await cache.get_all(list[int]) == [[1], [2, 3]]

    @pytest.mark.asyncio
    async def test_failure_rolls_back_whole_call(self, cache: BulkObjectCache) -> None:
        """Test that a bad item leaves none of the call's items behind."""
        await cache.insert("existing", 0)

        with pytest.raises(InvalidArgumentError):
            await cache.insert_many({"a": 1, "b": 2, "": 3})

        assert await cache.get_all_keys() == ["existing"]

    @pytest.mark.asyncio
    async def test_requires_mapping(self, cache: BulkObjectCache) -> None:
        """Test that pairs must come as a mapping."""
        with pytest.raises(InvalidArgumentError):
            await cache.insert_many([("a", 1)])  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_empty_mapping(self, cache: BulkObjectCache) -> None:
        """Test that nothing inserted returns zero."""
        assert await cache.insert_many({}) == 0


class TestInvalidateMany:
    """Test multi-key invalidation."""

    @pytest.mark.asyncio
    async def test_missing_keys_are_skipped(self, cache: BulkObjectCache) -> None:
        """Test that absent keys count as nothing to invalidate."""
        await cache.insert_many({"a": 1, "b": 2, "c": 3})

        assert await cache.invalidate_many(["a", "missing", "c"], int) == 2
        assert await cache.get_all_keys() == ["b"]

    @pytest.mark.asyncio
    async def test_type_mismatch_rolls_back(self, cache: BulkObjectCache) -> None:
        """Test that a mismatch aborts and restores earlier deletions."""
        await cache.insert("a", 1)
        await cache.insert("b", User(name="b", age=2))
        await cache.insert("c", 3)

        with pytest.raises(TypeMismatchError):
            await cache.invalidate_many(["a", "b", "c"], int)

        assert await cache.get_all_keys() == ["a", "b", "c"]


class TestCreatedAtMany:
    """Test multi-key creation time lookups."""

    @pytest.mark.asyncio
    async def test_absent_keys_map_to_none(self, cache: BulkObjectCache, clock: FakeClock) -> None:
        """Test that every requested key is in the result."""
        await cache.insert("a", 1)
        clock.advance(seconds=10)
        await cache.insert("b", 2)

        result = await cache.get_created_at_many(["a", "b", "c"])

        start = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert result == {"a": start, "b": start + timedelta(seconds=10), "c": None}
