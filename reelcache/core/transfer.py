"""
Handles a single transfer, from the size probe to the promotion of the partial
file to its final name.
"""

import asyncio
import logging
import os
import time
from collections.abc import Awaitable, Callable

import aiofiles
import aiohttp

from reelcache.core.in_flight import InFlightRegistry
from reelcache.core.progress_monitor import (
    LoggingReporter,
    ProgressMonitor,
    ProgressReporter,
)
from reelcache.exceptions import ContentValidationError, TransferError
from reelcache.media import Downloader, FileIntegrityChecker
from reelcache.models.stats import TransferStats
from reelcache.models.target import Target
from reelcache.utils.formatting import format_duration, format_size

log = logging.getLogger(__name__)

OnComplete = Callable[[str, Target], Awaitable[None]]


class Transfer:
    """
    Moves the bytes of one remote file into a target's partial file, validates
    the result and promotes it.

    Steps run strictly in order: probe, stream, validate, promote, index. Any
    failure removes the partial file and records the failure in the registry;
    the cache index is only touched on success.
    """

    def __init__(
        self,
        target: Target,
        remote_url: str,
        origin: str,
        downloader: Downloader,
        registry: InFlightRegistry,
        on_complete: OnComplete,
        reporter: ProgressReporter | None = None,
        progress_interval: float = 2.0,
        speed_smoothing: float = 0.25,
    ):
        self.target = target
        self.remote_url = remote_url
        self.origin = origin
        self.downloader = downloader
        self.registry = registry
        self.on_complete = on_complete
        self.reporter = reporter or LoggingReporter()
        self.progress_interval = progress_interval
        self.speed_smoothing = speed_smoothing

    async def run(self) -> bool:
        """
        Executes the transfer. Never raises except on cancellation.

        Once the file is promoted the in-flight entry is completed whatever
        happens to the index update, so the target reads as ready.

        Returns:
            True if the file was promoted and indexed, False otherwise.
        """
        target = self.target
        log.info(
            f"Downloading {target.title} [dim]{target.final_path.name}[/dim] "
            f"from {self.remote_url}"
        )
        start = time.monotonic()

        try:
            written = await self._fetch()
            if not await asyncio.to_thread(
                FileIntegrityChecker.check_media_payload, target.partial_path
            ):
                raise ContentValidationError(
                    f"'{target.partial_path}' is not a media file"
                )
            # No await between the rename and the bookkeeping below.
            os.replace(target.partial_path, target.final_path)
        except asyncio.CancelledError:
            self._discard("transfer cancelled")
            raise
        except (TransferError, OSError) as e:
            self._discard(str(e))
            return False
        except Exception as e:
            log.error(
                f"[red]✗ Unexpected error while downloading {target.title}: {e}[/red]",
                exc_info=True,
            )
            self._discard(f"unexpected error: {e}")
            return False

        try:
            await self.on_complete(self.origin, target)
        except Exception as e:
            log.error(f"[red]✗ Could not index {target.final_path.name}: {e}[/red]")
            return False
        finally:
            self.registry.complete(target.key)
        log.info(
            f"[green]✓ Download of {target.title} completed in "
            f"{format_duration(time.monotonic() - start)}[/green] "
            f"[dim]({format_size(written)})[/dim]"
        )
        return True

    async def _fetch(self) -> int:
        """Probes the size, then streams the body into the partial file."""
        target = self.target
        async with aiofiles.open(target.partial_path, "wb") as out:
            total = await self.downloader.probe_size(self.remote_url)

            stats = TransferStats(
                title=target.title, total_bytes=total, smoothing=self.speed_smoothing
            )
            monitor = ProgressMonitor(
                target.partial_path, stats, self.reporter, self.progress_interval
            )
            monitor.start()
            try:
                written = await self.downloader.stream_to_file(self.remote_url, out)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                await monitor.cancel()
                raise TransferError(f"Body transfer failed: {e}") from e
            except BaseException:
                await monitor.cancel()
                raise
        await monitor.stop(written)
        return written

    def _discard(self, reason: str) -> None:
        """Removes the partial file and records the failure."""
        path = self.target.partial_path
        try:
            path.unlink(missing_ok=True)
            log.warning(
                f"[yellow]Deleted {path} due to an error:[/yellow] {reason}"
            )
        except OSError as e:
            log.error(f"[red]Could not delete {path}: {e}[/red]")
        self.registry.fail(self.target.key, reason)
