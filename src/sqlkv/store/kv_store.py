"""
SQLite-backed key-value store with Redis-style expiration.

Expiry is enforced two ways:
- Lazily: every read checks the row's expiry. An expired row is reported as
  absent and handed to a detached task that deletes it, so cleanup never
  adds latency to the read.
- Eagerly: an optional Sweeper bulk-deletes expired rows on a timer.

Detached deletions are conditional: they only remove the row if it is still
expired when the delete runs. A set() that lands between the read and the
delete is therefore kept.
"""

from __future__ import annotations

import asyncio
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

import aiosqlite

from sqlkv.config import Settings, get_settings
from sqlkv.exceptions import KeyNotFoundError, StorageError, WrongTypeError
from sqlkv.logging import get_logger, setup_logging
from sqlkv.store.base import KeyValueProtocol
from sqlkv.store.expiry import (
    TTL,
    Clock,
    compute_expires_at,
    is_expired,
    now_ms,
    remaining_seconds,
)
from sqlkv.store.pattern import glob_to_like
from sqlkv.store.schema import TableSchema
from sqlkv.store.sweeper import Sweeper
from sqlkv.types import Record, ValueKind

logger = get_logger(__name__)

MEMORY_DB = ":memory:"


class SQLiteKVStore(KeyValueProtocol):
    """Key-value store over one SQLite table.

    Owns its aiosqlite connection, its detached deletion tasks and, once
    started, one Sweeper with its stop event. Several stores may share a
    database file as long as they use different tables.

    Usage:
        async with SQLiteKVStore(".cache/kv.db", "sessions") as store:
            await store.set("user:1", "alice", ttl=60)
            store.start_sweeper(interval=30)
    """

    def __init__(
        self,
        db_path: str | Path,
        table: str = "kv_store",
        clock: Clock = time.time,
    ) -> None:
        """Initialize the store. No I/O happens until init().

        Args:
            db_path: SQLite database file, or ":memory:".
            table: Table holding this store's records.
            clock: Seconds-since-epoch clock, injectable for tests.

        Raises:
            ConfigurationError: If the table name is empty or not an identifier.
        """
        self.schema = TableSchema(table)
        self.db_path = db_path
        self._clock = clock
        self._db: aiosqlite.Connection | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._sweeper: Sweeper | None = None
        self._sweeper_stop: asyncio.Event | None = None

    @property
    def table(self) -> str:
        return self.schema.table

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == MEMORY_DB

    @property
    def is_open(self) -> bool:
        return self._db is not None

    @property
    def sweeper(self) -> Sweeper | None:
        return self._sweeper

    @property
    def pending_deletions(self) -> int:
        """Number of detached deletions still in flight."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Open the connection and create the table and expiry index."""
        if self._db is not None:
            return

        if not self.in_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        with self._storage_errors("open"):
            db = await aiosqlite.connect(self.db_path)

        try:
            with self._storage_errors("create_table"):
                db.row_factory = aiosqlite.Row
                # Glob matching is case-sensitive, SQLite's LIKE is not by default
                await db.execute("PRAGMA case_sensitive_like = ON")
                await db.execute(self.schema.create_table)
                await db.execute(self.schema.create_expiry_index)
                await db.commit()
        except StorageError:
            await db.close()
            raise

        self._db = db
        logger.info("Store opened", table=self.table, db_path=str(self.db_path))

    async def close(self) -> None:
        """Stop the sweeper and close the connection.

        Detached deletions still in flight are not awaited; they may fail
        once the connection is gone, which is only logged.
        """
        try:
            await self.stop_sweeper()
        finally:
            if self._db is not None:
                db, self._db = self._db, None
                await db.close()
                logger.info(
                    "Store closed",
                    table=self.table,
                    pending_deletions=len(self._pending),
                )

    async def __aenter__(self) -> SQLiteKVStore:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def start_sweeper(self, interval: float) -> Sweeper:
        """Start the background sweeper. Must be called from a running loop.

        Only one sweeper runs per store; calling this again while it is
        running returns the existing sweeper.

        Args:
            interval: Seconds between sweeps.

        Returns:
            The running Sweeper.

        Raises:
            ConfigurationError: If interval is not positive. The store stays
                usable; expiry is still enforced on reads.
            StorageError: If the store is not open.
        """
        if self._sweeper is not None and self._sweeper.running:
            logger.warning(
                "Sweeper already running, not starting another",
                table=self.table,
                interval=self._sweeper.interval,
            )
            return self._sweeper

        self._require_db("start_sweeper")
        stop_event = asyncio.Event()
        sweeper = Sweeper(self.purge_expired, interval, stop_event, name=self.table)
        sweeper.start()

        self._sweeper = sweeper
        self._sweeper_stop = stop_event
        return sweeper

    async def stop_sweeper(self) -> None:
        """Signal the sweeper to stop and wait until its loop exits."""
        if self._sweeper_stop is not None:
            self._sweeper_stop.set()
        if self._sweeper is not None:
            sweeper, self._sweeper = self._sweeper, None
            await sweeper.stop()
        self._sweeper_stop = None

    async def drain_pending(self) -> None:
        """Wait for detached deletions spawned so far to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    async def set(self, key: str, value: str, ttl: TTL = 0) -> None:
        """Set the string value of a key, replacing any previous record.

        Args:
            key: The key.
            value: String value.
            ttl: Time to live in seconds or as a timedelta. Zero or negative
                means the key never expires.
        """
        expires_at = compute_expires_at(ttl, self._now())
        db = self._require_db("set", key=key)

        with self._storage_errors("set", key=key):
            await db.execute(
                self.schema.upsert,
                (key, value, ValueKind.STRING.value, expires_at),
            )
            await db.commit()

    async def get(self, key: str) -> str:
        """Get the value of a live string key.

        Raises:
            KeyNotFoundError: If the key is absent or expired.
            WrongTypeError: If the key holds a non-string value.
        """
        db = self._require_db("get", key=key)

        with self._storage_errors("get", key=key):
            async with db.execute(self.schema.select_record, (key,)) as cursor:
                row = await cursor.fetchone()

        if row is None:
            raise self._not_found(key)

        record = Record.from_row(row)
        if not record.is_string:
            raise self._wrong_type(key, record.kind)

        if is_expired(record.expires_at, self._now()):
            self._schedule_expiry_delete(key)
            raise self._not_found(key)

        return record.value if record.value is not None else ""

    async def delete(self, key: str) -> None:
        """Delete a key. Deleting a missing key is not an error."""
        db = self._require_db("delete", key=key)

        with self._storage_errors("delete", key=key):
            await db.execute(self.schema.delete_key, (key,))
            await db.commit()

    async def exists(self, key: str) -> bool:
        """Check whether a key is live. The value kind does not matter."""
        db = self._require_db("exists", key=key)

        with self._storage_errors("exists", key=key):
            async with db.execute(self.schema.select_meta, (key,)) as cursor:
                row = await cursor.fetchone()

        if row is None:
            return False

        if is_expired(row["expires_at"], self._now()):
            self._schedule_expiry_delete(key)
            return False

        return True

    async def ttl(self, key: str) -> float:
        """Get the remaining time to live of a key in seconds.

        Returns:
            Remaining seconds, or NO_EXPIRATION (-1.0) for a permanent key.

        Raises:
            KeyNotFoundError: If the key is absent or expired.
            WrongTypeError: If the key holds a non-string value.
        """
        db = self._require_db("ttl", key=key)

        with self._storage_errors("ttl", key=key):
            async with db.execute(self.schema.select_meta, (key,)) as cursor:
                row = await cursor.fetchone()

        if row is None:
            raise self._not_found(key)

        if row["kind"] != ValueKind.STRING.value:
            raise self._wrong_type(key, row["kind"])

        expires_at = row["expires_at"]
        now = self._now()
        if is_expired(expires_at, now):
            self._schedule_expiry_delete(key)
            raise self._not_found(key)

        return remaining_seconds(expires_at, now)

    async def keys(self, pattern: str = "*") -> list[str]:
        """List live string keys matching a glob pattern.

        Supports '*' and '?'. Expired matches are left out and deleted in
        the background once the scan has finished. Order is unspecified.
        """
        like = glob_to_like(pattern)
        now = self._now()
        db = self._require_db("keys", pattern=pattern)

        matched: list[str] = []
        expired: list[str] = []
        with self._storage_errors("keys", pattern=pattern, like=like):
            async with db.execute(self.schema.scan_pattern, (like,)) as cursor:
                async for row in cursor:
                    if row["kind"] != ValueKind.STRING.value:
                        continue
                    if is_expired(row["expires_at"], now):
                        expired.append(row["key"])
                        continue
                    matched.append(row["key"])

        for key in expired:
            self._schedule_expiry_delete(key)

        if expired:
            logger.debug(
                "Scan found expired keys",
                table=self.table,
                pattern=pattern,
                expired=len(expired),
            )

        return matched

    # ------------------------------------------------------------------
    # Maintenance and inspection
    # ------------------------------------------------------------------

    async def purge_expired(self) -> int:
        """Delete every expired row in one statement.

        Returns:
            Number of rows deleted.
        """
        db = self._require_db("purge")

        with self._storage_errors("purge"):
            cursor = await db.execute(self.schema.purge_expired, (self._now(),))
            await db.commit()

        return max(cursor.rowcount, 0)

    async def count(self) -> int:
        """Count live keys of any kind."""
        db = self._require_db("count")

        with self._storage_errors("count"):
            async with db.execute(self.schema.count_live, (self._now(),)) as cursor:
                row = await cursor.fetchone()

        return row[0] if row else 0

    async def stats(self) -> dict[str, Any]:
        """Get statistics about the physical table.

        Returns:
            Dict with total rows, live rows, expired-but-present rows and
            row counts by kind.
        """
        db = self._require_db("stats")
        now = self._now()
        stats: dict[str, Any] = {"table": self.table}

        with self._storage_errors("stats"):
            async with db.execute(self.schema.count_by_kind) as cursor:
                rows = await cursor.fetchall()
                stats["by_kind"] = {row[0]: row[1] for row in rows}

            async with db.execute(self.schema.count_expired, (now,)) as cursor:
                row = await cursor.fetchone()
                stats["expired"] = row[0] if row else 0

        stats["total"] = sum(stats["by_kind"].values())
        stats["live"] = stats["total"] - stats["expired"]
        return stats

    async def scan_records(self) -> list[Record]:
        """Return every physical row, including logically expired ones."""
        db = self._require_db("scan")

        with self._storage_errors("scan"):
            async with db.execute(self.schema.scan_all) as cursor:
                rows = await cursor.fetchall()

        return [Record.from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> int:
        return now_ms(self._clock)

    def _require_db(self, operation: str, **context: Any) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError(
                "Store is not open. Call init() first.",
                context={"operation": operation, "table": self.table, **context},
            )
        return self._db

    @contextmanager
    def _storage_errors(self, operation: str, **context: Any) -> Generator[None, None, None]:
        """Wrap driver failures as StorageError with operation context."""
        try:
            yield
        except (sqlite3.Error, ValueError) as e:
            # aiosqlite raises ValueError once its connection is closed
            raise StorageError(
                f"Storage operation '{operation}' failed",
                context={
                    "operation": operation,
                    "table": self.table,
                    **context,
                    "error": str(e),
                },
            ) from e

    def _not_found(self, key: str) -> KeyNotFoundError:
        return KeyNotFoundError(
            "Key not found or expired",
            context={"key": key, "table": self.table},
        )

    def _wrong_type(self, key: str, kind: str) -> WrongTypeError:
        return WrongTypeError(
            "Operation against a key holding the wrong kind of value",
            context={"key": key, "kind": kind, "expected": ValueKind.STRING.value},
        )

    def _schedule_expiry_delete(self, key: str) -> None:
        """Delete an expired key in the background without blocking the caller."""
        task = asyncio.create_task(self._delete_if_expired(key))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _delete_if_expired(self, key: str) -> None:
        try:
            db = self._require_db("expire", key=key)
            with self._storage_errors("expire", key=key):
                cursor = await db.execute(
                    self.schema.delete_key_if_expired, (key, self._now())
                )
                await db.commit()
        except StorageError as e:
            logger.warning("Lazy deletion of expired key failed", key=key, error=str(e))
            return

        if cursor.rowcount > 0:
            logger.debug("Lazily deleted expired key", table=self.table, key=key)


async def open_store(
    settings: Settings | None = None,
    clock: Clock = time.time,
    configure_logging: bool = True,
) -> SQLiteKVStore:
    """Open a store from settings and start its sweeper when enabled.

    Args:
        settings: Settings to use. Defaults to get_settings().
        clock: Seconds-since-epoch clock passed to the store.
        configure_logging: Apply LOG_LEVEL and SQLKV_LOG_FILE from settings.

    Returns:
        An initialized SQLiteKVStore. Close it with ``await store.close()``.
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.LOG_LEVEL, settings.SQLKV_LOG_FILE)

    store = SQLiteKVStore(settings.db_path, settings.table, clock=clock)
    await store.init()

    if settings.sweeper_enabled:
        store.start_sweeper(settings.sweep_interval)
    else:
        logger.info(
            "Sweeper disabled, expired keys are only removed on access",
            table=store.table,
        )

    return store
