"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlkv.exceptions import ConfigurationError
from sqlkv.store.schema import validate_table_name


class Settings(BaseSettings):
    """Store settings loaded from environment variables.

    Optional:
        SQLKV_DB_PATH: SQLite database file, or ":memory:"
        SQLKV_TABLE: Table used as the store's namespace
        SQLKV_SWEEP_INTERVAL_SECONDS: Sweeper interval; 0 or less disables it
        SQLKV_LOG_FILE: JSON lines log file
        LOG_LEVEL: Logging level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    SQLKV_DB_PATH: str = Field(
        default=".cache/sqlkv.db",
        description="SQLite database file (':memory:' for a private in-memory database)",
    )
    SQLKV_TABLE: str = Field(
        default="kv_store",
        description="Table holding this store's records",
    )

    # Expiration
    SQLKV_SWEEP_INTERVAL_SECONDS: float = Field(
        default=60.0,
        description="Seconds between background sweeps (<= 0 disables the sweeper)",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    SQLKV_LOG_FILE: Path | None = Field(
        default=None, description="Optional JSON lines log file"
    )

    @property
    def db_path(self) -> str:
        """Get database path (lowercase alias)."""
        return self.SQLKV_DB_PATH

    @property
    def table(self) -> str:
        """Get table name (lowercase alias)."""
        return self.SQLKV_TABLE

    @property
    def sweep_interval(self) -> float:
        """Get sweeper interval in seconds (lowercase alias)."""
        return self.SQLKV_SWEEP_INTERVAL_SECONDS

    @property
    def sweeper_enabled(self) -> bool:
        return self.SQLKV_SWEEP_INTERVAL_SECONDS > 0

    @field_validator("SQLKV_DB_PATH")
    @classmethod
    def validate_db_path(cls, v: str) -> str:
        """Reject an empty database path."""
        if not v.strip():
            raise ValueError("SQLKV_DB_PATH cannot be empty")
        return v

    @field_validator("SQLKV_TABLE")
    @classmethod
    def validate_table(cls, v: str) -> str:
        """Validate that SQLKV_TABLE is a safe SQL identifier."""
        try:
            return validate_table_name(v)
        except ConfigurationError as e:
            raise ValueError(f"SQLKV_TABLE is invalid: {e}") from e

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        if self.SQLKV_DB_PATH != ":memory:":
            Path(self.SQLKV_DB_PATH).parent.mkdir(parents=True, exist_ok=True)


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
