"""
Pytest configuration and fixtures for sqlkv tests.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import AsyncGenerator, Callable, Generator
from unittest.mock import patch

import pytest

from sqlkv.config import clear_settings_cache
from sqlkv.store.kv_store import SQLiteKVStore


class FakeClock:
    """Controllable seconds-since-epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "SQLKV_DB_PATH": str(temp_dir / "env" / "kv.db"),
        "SQLKV_TABLE": "env_table",
        "SQLKV_SWEEP_INTERVAL_SECONDS": "0.5",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
async def kv_store(temp_dir: Path, clock: FakeClock) -> AsyncGenerator[SQLiteKVStore, None]:
    """Create an initialized file-backed store driven by the fake clock."""
    store = SQLiteKVStore(temp_dir / "kv.db", "test_kv_data", clock=clock)
    await store.init()
    yield store
    await store.drain_pending()
    await store.close()


async def insert_raw(
    store: SQLiteKVStore,
    key: str,
    value: str | None,
    kind: str,
    expires_at: int | None = None,
) -> None:
    """Write a row directly, bypassing set(), to inject other kinds."""
    assert store._db is not None
    await store._db.execute(
        f"INSERT OR REPLACE INTO {store.schema.quoted} "
        "(key, value, kind, expires_at) VALUES (?, ?, ?, ?)",
        (key, value, kind, expires_at),
    )
    await store._db.commit()


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Poll until predicate() is true or fail after timeout seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
