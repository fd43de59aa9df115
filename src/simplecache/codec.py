"""
Value serialization for the object cache.

Values are dumped to compact JSON bytes through a pydantic TypeAdapter and
validated back into the requested type, so any type pydantic can validate
(builtins, dataclasses, pydantic models, enums, datetimes, generic
containers) can be cached. Bytes are written as base64 and non-finite floats
as the Infinity/NaN constants, so both survive the round trip.

An ordered pipeline of ByteTransform steps runs after serialization on
write, and in reverse order before deserialization on read.
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, Sequence, TypeVar

from cryptography.fernet import Fernet, InvalidToken
from pydantic import (
    ConfigDict,
    PydanticSchemaGenerationError,
    PydanticUserError,
    TypeAdapter,
    ValidationError,
)
from pydantic_core import PydanticSerializationError

from simplecache.exceptions import ConfigurationError, DecodeError, InvalidArgumentError
from simplecache.logging import get_logger
from simplecache.types import type_tag

if TYPE_CHECKING:
    from simplecache.config import Settings

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ByteTransform:
    """A reversible bytes-to-bytes step of the codec pipeline.

    Attributes:
        name: Short name used in logs and errors.
        encode: Applied on write.
        decode: Applied on read; must invert ``encode``.
    """

    name: str
    encode: Callable[[bytes], bytes]
    decode: Callable[[bytes], bytes]


def compression(level: int = 6) -> ByteTransform:
    """zlib compression transform.

    Args:
        level: zlib compression level, 0-9.
    """
    if not 0 <= level <= 9:
        raise InvalidArgumentError(
            "Compression level must be between 0 and 9",
            context={"argument": "level", "value": level},
        )
    return ByteTransform(
        name="zlib",
        encode=lambda data: zlib.compress(data, level),
        decode=zlib.decompress,
    )


def encryption(key: str | bytes) -> ByteTransform:
    """Fernet (AES-128-CBC + HMAC) encryption transform.

    Args:
        key: A url-safe base64 encoded 32-byte key, see generate_encryption_key().
    """
    raw_key = key.encode("utf-8") if isinstance(key, str) else key
    try:
        fernet = Fernet(raw_key)
    except ValueError as e:
        raise ConfigurationError("Invalid encryption key") from e

    return ByteTransform(name="fernet", encode=fernet.encrypt, decode=fernet.decrypt)


def generate_encryption_key() -> str:
    """Generate a fresh key for encryption()."""
    return Fernet.generate_key().decode("ascii")


# Models and dataclasses carry their own config; it applies to everything else
_JSON_CONFIG = ConfigDict(
    ser_json_bytes="base64",
    val_json_bytes="base64",
    ser_json_inf_nan="constants",
)


def _build_adapter(type_: Any) -> TypeAdapter[Any]:
    try:
        return TypeAdapter(type_, config=_JSON_CONFIG)
    except PydanticUserError as e:
        if e.code != "type-adapter-config-unused":
            raise
        return TypeAdapter(type_)


@lru_cache(maxsize=256)
def _cached_adapter(type_: Any) -> TypeAdapter[Any]:
    return _build_adapter(type_)


def _adapter(type_: Any) -> TypeAdapter[Any]:
    try:
        return _cached_adapter(type_)
    except TypeError:
        # Unhashable annotations (e.g. Annotated with list metadata)
        return _build_adapter(type_)


class Codec:
    """Encodes values to payload bytes and back.

    Example:
        >>> codec = Codec([compression(), encryption(generate_encryption_key())])
        >>> codec.decode(codec.encode([1, 2, 3]), list[int])
        [1, 2, 3]
    """

    def __init__(self, transforms: Sequence[ByteTransform] = ()) -> None:
        """Initialize codec.

        Args:
            transforms: Ordered write pipeline. Empty means identity.
        """
        self.transforms: tuple[ByteTransform, ...] = tuple(transforms)

    @classmethod
    def from_settings(cls, settings: Settings) -> Codec:
        """Build the pipeline configured in settings (compress, then encrypt)."""
        transforms: list[ByteTransform] = []
        if settings.CACHE_COMPRESSION_LEVEL is not None:
            transforms.append(compression(settings.CACHE_COMPRESSION_LEVEL))
        if settings.CACHE_ENCRYPTION_KEY:
            transforms.append(encryption(settings.CACHE_ENCRYPTION_KEY))
        return cls(transforms)

    def __repr__(self) -> str:
        names = ", ".join(t.name for t in self.transforms)
        return f"Codec([{names}])"

    def encode(self, value: Any, type_: Any = None) -> bytes:
        """Serialize a value and run the write pipeline.

        Args:
            value: The value to encode.
            type_: Type to serialize the value as. Defaults to type(value).

        Returns:
            Payload bytes.

        Raises:
            InvalidArgumentError: If the value cannot be serialized.
        """
        target = type(value) if type_ is None else type_
        try:
            data = _adapter(target).dump_json(value, warnings="error")
        except (PydanticSerializationError, PydanticSchemaGenerationError, TypeError, ValueError) as e:
            raise InvalidArgumentError(
                "Value cannot be serialized",
                context={"type": type_tag(target), "reason": str(e)},
            ) from e

        for transform in self.transforms:
            data = transform.encode(data)
        return data

    def decode(self, data: bytes, type_: type[T] | Any) -> T:
        """Undo the write pipeline and deserialize.

        Args:
            data: Payload bytes as stored.
            type_: The type to decode into.

        Returns:
            The decoded value.

        Raises:
            DecodeError: If the bytes are malformed, truncated, fail a transform
                or do not fit the requested type.
        """
        tag = type_tag(type_)

        for transform in reversed(self.transforms):
            try:
                data = transform.decode(data)
            except (zlib.error, InvalidToken, ValueError, TypeError) as e:
                raise DecodeError(
                    f"Payload transform '{transform.name}' failed",
                    context={"type": tag, "reason": str(e) or type(e).__name__},
                ) from e

        try:
            return _adapter(type_).validate_json(data)
        except ValidationError as e:
            if any(error["type"] == "json_invalid" for error in e.errors()):
                raise DecodeError(
                    "Payload is not valid serialized data",
                    context={"type": tag, "reason": e.errors()[0]["msg"]},
                ) from e
            raise DecodeError(
                "Payload does not match the requested type",
                context={"type": tag, "reason": f"{e.error_count()} validation error(s)"},
            ) from e
        except PydanticSchemaGenerationError as e:
            raise DecodeError(
                "Requested type is not decodable",
                context={"type": tag, "reason": str(e)},
            ) from e
