"""
Tests for core types: instants, the expiration sentinel and type tags.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from conftest import Point, Tagged, User
from simplecache.exceptions import NotFoundError, TypeMismatchError
from simplecache.types import (
    NEVER,
    NEVER_INSTANT,
    Entry,
    ensure_utc,
    from_instant,
    to_instant,
    type_tag,
)


class TestInstants:
    """Tests for datetime <-> stored integer conversion."""

    def test_epoch_is_zero(self) -> None:
        """Test that the Unix epoch maps to zero."""
        assert to_instant(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_microsecond_precision(self) -> None:
        """Test that conversion keeps microseconds."""
        value = datetime(2025, 3, 4, 5, 6, 7, 891011, tzinfo=timezone.utc)
        assert from_instant(to_instant(value)) == value

    def test_naive_datetime_is_utc(self) -> None:
        """Test that naive datetimes are interpreted as UTC."""
        naive = datetime(2025, 1, 1, 12, 0)
        assert to_instant(naive) == to_instant(naive.replace(tzinfo=timezone.utc))

    def test_other_timezones_are_normalized(self) -> None:
        """Test that aware datetimes in other zones convert to UTC."""
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2025, 1, 1, 14, 0, tzinfo=plus_two)
        assert ensure_utc(value) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert ensure_utc(value).tzinfo == timezone.utc

    def test_never_is_the_largest_instant(self) -> None:
        """Test that the sentinel sorts after any real instant."""
        assert from_instant(NEVER_INSTANT) == NEVER
        assert NEVER_INSTANT > to_instant(datetime(9999, 12, 31, tzinfo=timezone.utc))


class TestTypeTag:
    """Tests for type tag resolution."""

    def test_string_is_verbatim(self) -> None:
        """Test that explicit tags are used as given."""
        assert type_tag("orders") == "orders"

    def test_builtin_types(self) -> None:
        """Test builtin type tags."""
        assert type_tag(int) == "builtins.int"
        assert type_tag(str) == "builtins.str"

    def test_none_is_none_type(self) -> None:
        """Test that None and NoneType resolve to the same tag."""
        assert type_tag(None) == type_tag(type(None)) == "builtins.NoneType"

    def test_classes_use_qualified_name(self) -> None:
        """Test model and dataclass tags."""
        assert type_tag(User) == f"{User.__module__}.User"
        assert type_tag(Point) == f"{Point.__module__}.Point"

    def test_explicit_class_tag(self) -> None:
        """Test that __cache_tag__ overrides the qualified name."""
        assert type_tag(Tagged) == "tagged-v1"

    def test_generics_differ_by_parameter(self) -> None:
        """Test that parameterized generics get distinct tags."""
        assert type_tag(list[int]) != type_tag(list[str])
        assert type_tag(list[int]) == "list[int]"


class TestEntry:
    """Tests for the Entry record."""

    def test_defaults_to_never_expiring(self) -> None:
        """Test that entries default to the sentinel."""
        entry = Entry("k", "builtins.int", b"1", datetime.now(timezone.utc))
        assert entry.expiration == NEVER
        assert entry.never_expires

    def test_finite_expiration_is_not_never(self) -> None:
        """Test that any real instant is distinguished from the sentinel."""
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        entry = Entry("k", "t", b"", now, expiration=now + timedelta(days=36500))
        assert not entry.never_expires


class TestExceptions:
    """Tests for exception rendering."""

    def test_context_in_message(self) -> None:
        """Test that context is rendered after the message."""
        error = TypeMismatchError("Mismatch", context={"key": "a"})
        assert str(error) == "Mismatch (key='a')"
        assert error.context == {"key": "a"}

    def test_not_found_is_key_error(self) -> None:
        """Test that NotFoundError can be caught as KeyError."""
        error = NotFoundError("Key not found in cache", context={"key": "a"})
        assert isinstance(error, KeyError)
        assert str(error) == "Key not found in cache (key='a')"
