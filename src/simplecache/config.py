"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from cryptography.fernet import Fernet
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Cache settings loaded from environment variables.

    Optional:
        CACHE_DB_PATH: SQLite database file (required before first use
            unless a path is passed to the backend directly)
        CACHE_JOURNAL_MODE: SQLite journal mode
        CACHE_BUSY_TIMEOUT: Seconds to wait on a locked database
        CACHE_COMPRESSION_LEVEL: zlib level, enables compression when set
        CACHE_ENCRYPTION_KEY: Fernet key, enables encryption when set
        LOG_LEVEL: Logging level
        LOG_FILE: JSON lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_DB_PATH: Path | None = Field(
        default=None, description="Path of the SQLite database file"
    )
    CACHE_JOURNAL_MODE: Literal["WAL", "DELETE", "TRUNCATE", "PERSIST", "MEMORY"] = Field(
        default="WAL", description="SQLite journal mode"
    )
    CACHE_BUSY_TIMEOUT: float = Field(
        default=5.0, gt=0.0, description="Seconds to wait when the database is locked"
    )

    # Payload transforms
    CACHE_COMPRESSION_LEVEL: int | None = Field(
        default=None, ge=0, le=9, description="zlib compression level"
    )
    CACHE_ENCRYPTION_KEY: str | None = Field(
        default=None, description="Fernet key for payload encryption"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON log file")

    @field_validator("CACHE_DB_PATH", "CACHE_ENCRYPTION_KEY", "CACHE_COMPRESSION_LEVEL", mode="before")
    @classmethod
    def empty_as_unset(cls, v: object) -> object:
        """Treat empty environment values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("CACHE_ENCRYPTION_KEY")
    @classmethod
    def validate_encryption_key(cls, v: str | None) -> str | None:
        """Validate that the encryption key is a usable Fernet key."""
        if v is None:
            return v
        try:
            Fernet(v.encode("utf-8"))
        except ValueError as e:
            raise ValueError(
                "CACHE_ENCRYPTION_KEY must be a 32-byte url-safe base64 Fernet key"
            ) from e
        return v

    def redacted_display(self) -> dict[str, str | int | float | None]:
        """Return settings with the encryption key redacted for display."""
        def redact(value: str | None) -> str | None:
            if value is None:
                return None
            return f"{value[:4]}...{value[-4:]}" if len(value) > 12 else "***"

        return {
            "CACHE_DB_PATH": str(self.CACHE_DB_PATH) if self.CACHE_DB_PATH else None,
            "CACHE_JOURNAL_MODE": self.CACHE_JOURNAL_MODE,
            "CACHE_BUSY_TIMEOUT": self.CACHE_BUSY_TIMEOUT,
            "CACHE_COMPRESSION_LEVEL": self.CACHE_COMPRESSION_LEVEL,
            "CACHE_ENCRYPTION_KEY": redact(self.CACHE_ENCRYPTION_KEY),
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
