"""
Manages a Rich Live display of running transfers.
"""

import asyncio
import logging

from rich.console import Console
from rich.live import Live
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from reelcache.models.stats import ProgressSnapshot
from reelcache.utils.formatting import format_remaining

log = logging.getLogger("reelcache")


class ProgressManager:
    """
    Renders monitor snapshots as Rich progress bars, one per transfer title.

    Implements the reporter interface expected by the progress monitor.
    """

    def __init__(self, console: Console):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TextColumn("{task.fields[eta]}"),
            console=console,
            transient=False,
        )
        self._live: Live | None = None
        self._tasks: dict[str, TaskID] = {}

    def _description(self, title: str) -> str:
        return title if len(title) <= 45 else title[:42] + "..."

    def report(self, snapshot: ProgressSnapshot) -> None:
        task_id = self._tasks.get(snapshot.title)
        if task_id is None:
            task_id = self.progress.add_task(
                self._description(snapshot.title),
                total=snapshot.total_bytes,
                eta="",
            )
            self._tasks[snapshot.title] = task_id

        # The monitor counts an empty file as one byte.
        completed = min(snapshot.current_bytes, snapshot.total_bytes)
        eta = "done" if snapshot.finished else (
            f"{format_remaining(snapshot.remaining_seconds)} remaining"
        )
        self.progress.update(task_id, completed=completed, eta=eta)
        if self._live is None:
            log.debug(snapshot.describe())

    async def __aenter__(self):
        self._live = Live(self.progress, console=self.console, refresh_per_second=8)
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            await asyncio.sleep(0.2)
            self._live.stop()
            self._live = None
