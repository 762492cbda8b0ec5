"""
Periodically samples the size of a partial file and reports transfer progress.
"""

import asyncio
import logging
import os
from contextlib import suppress
from pathlib import Path
from typing import Protocol

from reelcache.models.stats import ProgressSnapshot, TransferStats

log = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    """Receives one snapshot per monitor tick."""

    def report(self, snapshot: ProgressSnapshot) -> None: ...


class LoggingReporter:
    """Writes each snapshot as a progress line to the log."""

    def report(self, snapshot: ProgressSnapshot) -> None:
        log.info(snapshot.describe())


class ProgressMonitor:
    """
    Samples a partial file on a fixed cadence until stopped.

    The monitor is purely observational: a failure to stat the file counts as
    an empty file, and a failing reporter is logged without affecting the
    transfer.
    """

    def __init__(
        self,
        path: Path,
        stats: TransferStats,
        reporter: ProgressReporter,
        interval: float = 2.0,
    ):
        self.path = path
        self.stats = stats
        self.reporter = reporter
        self.interval = interval
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    def _current_size(self) -> int:
        try:
            return os.stat(self.path).st_size
        except OSError:
            return 0

    def _report(self, snapshot: ProgressSnapshot) -> None:
        try:
            self.reporter.report(snapshot)
        except Exception as e:
            log.warning(f"Progress reporter failed for '{self.path.name}': {e}")
            log.debug("Reporter traceback:", exc_info=True)

    async def _run(self) -> None:
        while not self._stop.is_set():
            self._report(self.stats.update(self._current_size()))
            with suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)

    async def stop(self, final_bytes: int | None = None) -> ProgressSnapshot:
        """
        Stops the monitor and reports a final snapshot.

        Args:
            final_bytes: The byte count of the finished transfer, if it succeeded.
        """
        self._stop.set()
        if self._task:
            with suppress(asyncio.CancelledError):
                await self._task
        if final_bytes is not None:
            self.stats.update(final_bytes)
        snapshot = self.stats.snapshot(finished=final_bytes is not None)
        if final_bytes is not None:
            self._report(snapshot)
        return snapshot

    async def cancel(self) -> None:
        """Stops the monitor without a final report."""
        self._stop.set()
        if self._task and not self._task.done():
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
