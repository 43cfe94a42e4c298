"""
Background sweeper for expired keys.

Runs as one asyncio task per store. Every ``interval`` seconds it issues a
single bulk delete of rows whose expiry has passed, independent of read
traffic. A failed tick is logged and retried on the next tick.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from sqlkv.exceptions import ConfigurationError, StorageError
from sqlkv.logging import get_logger, log_context

logger = get_logger(__name__)

PurgeFn = Callable[[], Awaitable[int]]


class Sweeper:
    """Periodic bulk deletion of expired rows.

    The stop event is the cancellation signal. It is owned by whoever starts
    the sweeper (normally the store) and passed in here; once it is set the
    loop exits without running another sweep.
    """

    def __init__(
        self,
        purge: PurgeFn,
        interval: float,
        stop_event: asyncio.Event,
        name: str = "sqlkv",
    ) -> None:
        """Initialize the sweeper.

        Args:
            purge: Coroutine function deleting expired rows, returning the count.
            interval: Seconds between sweeps. Must be positive.
            stop_event: Event that stops the loop when set.
            name: Store name used in log context.

        Raises:
            ConfigurationError: If interval is not positive.
        """
        if interval <= 0:
            raise ConfigurationError(
                "Sweeper interval must be positive",
                context={"interval": interval, "store": name},
            )
        self.interval = float(interval)
        self.name = name
        self._purge = purge
        self._stop_event = stop_event
        self._task: asyncio.Task[None] | None = None

        self.ticks = 0
        self.failures = 0
        self.deleted_total = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            logger.warning("Sweeper already running", store=self.name)
            return
        self._task = asyncio.create_task(
            self._run(), name=f"sqlkv-sweeper-{self.name}"
        )

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it to exit."""
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run_once(self) -> int:
        """Run a single sweep.

        Returns:
            Number of rows deleted, 0 if the sweep failed.
        """
        self.ticks += 1
        try:
            deleted = await self._purge()
        except StorageError as e:
            self.failures += 1
            logger.warning(
                "Sweep failed, retrying on next tick",
                error=str(e),
                failures=self.failures,
            )
            return 0

        self.deleted_total += deleted
        if deleted:
            logger.info("Swept expired keys", deleted=deleted)
        else:
            logger.debug("Sweep found nothing to delete")
        return deleted

    async def _run(self) -> None:
        with log_context(store=self.name, component="sweeper"):
            logger.info("Sweeper started", interval=self.interval)
            while not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    await self.run_once()
            logger.info(
                "Sweeper stopped",
                ticks=self.ticks,
                deleted_total=self.deleted_total,
            )
