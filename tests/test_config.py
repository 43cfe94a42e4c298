"""
Tests for configuration module.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sqlkv.config import Settings, clear_settings_cache, get_settings
from sqlkv.store.kv_store import open_store

_SQLKV_VARS = [
    "SQLKV_DB_PATH",
    "SQLKV_TABLE",
    "SQLKV_SWEEP_INTERVAL_SECONDS",
    "SQLKV_LOG_FILE",
    "LOG_LEVEL",
]


class TestSettingsDefaults:
    """Tests for Settings default values."""

    def test_defaults(self) -> None:
        """Test default values with a clean environment."""
        with patch.dict(os.environ, {}, clear=False):
            for name in _SQLKV_VARS:
                os.environ.pop(name, None)

            settings = Settings(_env_file=None)

        assert settings.SQLKV_DB_PATH == ".cache/sqlkv.db"
        assert settings.SQLKV_TABLE == "kv_store"
        assert settings.SQLKV_SWEEP_INTERVAL_SECONDS == 60.0
        assert settings.SQLKV_LOG_FILE is None
        assert settings.LOG_LEVEL == "INFO"
        assert settings.sweeper_enabled is True


class TestSettingsValidation:
    """Tests for Settings validation."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings correctly loads from environment variables."""
        settings = get_settings()

        assert settings.db_path == mock_env_vars["SQLKV_DB_PATH"]
        assert settings.table == "env_table"
        assert settings.sweep_interval == 0.5
        assert settings.LOG_LEVEL == "DEBUG"

    def test_invalid_table_rejected(self) -> None:
        """Test that SQLKV_TABLE must be a safe identifier."""
        with patch.dict(os.environ, {"SQLKV_TABLE": "bad-name"}, clear=False):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

        assert "SQLKV_TABLE" in str(exc_info.value)

    def test_empty_db_path_rejected(self) -> None:
        """Test that SQLKV_DB_PATH cannot be blank."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, SQLKV_DB_PATH="  ")

    def test_invalid_log_level_rejected(self) -> None:
        """Test that LOG_LEVEL is restricted to known levels."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LOG_LEVEL="VERBOSE")

    def test_non_positive_interval_disables_sweeper(self) -> None:
        """Test that a zero interval is accepted and disables the sweeper."""
        settings = Settings(_env_file=None, SQLKV_SWEEP_INTERVAL_SECONDS=0)

        assert settings.sweeper_enabled is False


class TestSettingsMethods:
    """Tests for Settings methods."""

    def test_ensure_directories_creates_dirs(self, temp_dir: Path) -> None:
        """Test that ensure_directories creates the database directory."""
        db_path = temp_dir / "data" / "kv.db"
        settings = Settings(_env_file=None, SQLKV_DB_PATH=str(db_path))

        settings.ensure_directories()

        assert db_path.parent.exists()


class TestSettingsCache:
    """Tests for settings caching."""

    def test_get_settings_returns_same_instance(
        self, mock_env_vars: dict[str, str]
    ) -> None:
        """Test that get_settings returns cached instance."""
        assert get_settings() is get_settings()

    def test_clear_settings_cache_clears_cache(
        self, mock_env_vars: dict[str, str]
    ) -> None:
        """Test that clear_settings_cache clears the cache."""
        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2


class TestOpenStore:
    """Tests for building a store from settings."""

    @pytest.mark.asyncio
    async def test_open_store_starts_sweeper(self, temp_dir: Path) -> None:
        """Test that a positive interval starts the sweeper."""
        settings = Settings(
            _env_file=None,
            SQLKV_DB_PATH=str(temp_dir / "kv.db"),
            SQLKV_TABLE="sessions",
            SQLKV_SWEEP_INTERVAL_SECONDS=5,
        )

        store = await open_store(settings, configure_logging=False)
        try:
            assert store.table == "sessions"
            assert store.sweeper is not None
            assert store.sweeper.interval == 5.0
            await store.set("k", "v")
            assert await store.get("k") == "v"
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_open_store_without_sweeper(self, temp_dir: Path) -> None:
        """Test that a zero interval leaves only lazy expiry."""
        settings = Settings(
            _env_file=None,
            SQLKV_DB_PATH=str(temp_dir / "kv.db"),
            SQLKV_SWEEP_INTERVAL_SECONDS=0,
        )

        store = await open_store(settings, configure_logging=False)
        try:
            assert store.sweeper is None
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_open_store_uses_environment(
        self, mock_env_vars: dict[str, str]
    ) -> None:
        """Test that open_store falls back to get_settings()."""
        store = await open_store(configure_logging=False)
        try:
            assert store.table == "env_table"
            assert Path(mock_env_vars["SQLKV_DB_PATH"]).exists()
        finally:
            await store.close()
