"""
Exception hierarchy for the object cache.

All exceptions inherit from CacheError, which carries optional structured
context for logging. Storage engine faults (sqlite3.Error and friends) are
not wrapped and reach the caller unmodified.
"""

from __future__ import annotations

from typing import Any


class CacheError(Exception):
    """Base exception for all cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(CacheError):
    """Raised when configuration is invalid or missing.

    Examples:
        - No database path given and CACHE_DB_PATH unset
        - Invalid encryption key
    """

    pass


class InvalidArgumentError(CacheError, ValueError):
    """Raised for malformed input, before storage is touched.

    Context should include:
        - argument: The offending argument name
        - value: The rejected value (repr-safe)
    """

    pass


class NotFoundError(CacheError, KeyError):
    """Raised when a key has no entry in the cache.

    Context should include:
        - key: The missing key
    """

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return CacheError.__str__(self)


class TypeMismatchError(CacheError):
    """Raised when an entry was stored under a different type tag.

    Context should include:
        - key: The entry key
        - stored: The type tag the entry was stored with
        - requested: The type tag the caller asked for
    """

    pass


class DecodeError(CacheError):
    """Raised when a payload cannot be decoded as the requested type.

    Context should include:
        - type: The requested type tag
        - reason: Short description of the underlying failure
    """

    pass
