"""
The service object that owns the cache state and exposes it to the routing and
player layers.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from reelcache.core.admission import AdmissionOutcome, DownloadAdmission
from reelcache.core.in_flight import InFlightRegistry, TransferFailure
from reelcache.core.progress_monitor import ProgressReporter
from reelcache.core.transfer import Transfer
from reelcache.media import Downloader
from reelcache.models.config import CacheConfig
from reelcache.models.target import (
    PARTIAL_SUFFIX,
    CacheEntry,
    CacheReference,
    PlaybackPosition,
    Target,
)
from reelcache.storage.index import CacheIndex, PlaybackIndex
from reelcache.utils.path import PathResolver, normalize_origin

log = logging.getLogger(__name__)


class Readiness(str, Enum):
    """What a player can expect to find at a cached path."""

    READY = "ready"
    DOWNLOADING = "downloading"
    FAILED = "failed"
    MISSING = "missing"


@dataclass
class Resolution:
    """The answer to a resolve-or-start request."""

    outcome: AdmissionOutcome
    reference: str
    path: str
    task: asyncio.Task | None = None


@dataclass(frozen=True)
class PlaybackSource:
    """Everything the player page needs to start a video."""

    video_path: str
    video_url: str | None
    start_at: float


class MediaCacheService:
    """
    Owns the cache index, the playback index and the in-flight registry.

    Callers never touch the underlying collections; every mutation goes through
    the locks held by the indexes, the registry and the admission step.
    """

    def __init__(
        self,
        config: CacheConfig,
        reporter: ProgressReporter | None = None,
        downloader: Downloader | None = None,
    ):
        self.config = config
        self.reporter = reporter
        self.resolver = PathResolver(config.media_root)
        self.cache_index = CacheIndex(config.index_path)
        self.playback_index = PlaybackIndex(config.playback_path)
        self.registry = InFlightRegistry()
        self.downloader = downloader or Downloader(
            max_connections=config.max_connections,
            probe_timeout=config.probe_timeout,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )
        self.admission = DownloadAdmission(
            self.cache_index, self.registry, self._run_transfer
        )
        self._tasks: set[asyncio.Task] = set()

    async def __aenter__(self) -> "MediaCacheService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def normalize(self, origin: str) -> str:
        return normalize_origin(origin, self.config.origin_base)

    def media_path(self, path: str) -> str:
        """Prefixes a path with the media root unless it already carries it."""
        root = self.config.media_root.as_posix().rstrip("/") + "/"
        return path if path.startswith(root) else f"{root}{path.lstrip('/')}"

    # ── Cache lookups and admission ─────────────────────────────

    async def _indexed_path(self, origin: str) -> str | None:
        path = await self.cache_index.lookup(origin)
        if path and await asyncio.to_thread(Path(path).is_file):
            return path
        return None

    async def lookup(self, origin: str) -> str | None:
        """Returns a cache reference if the origin's file is already on disk."""
        path = await self._indexed_path(self.normalize(origin))
        return str(CacheReference(path)) if path else None

    async def resolve_or_start_download(
        self, origin: str, source_url: str
    ) -> Resolution:
        """
        Returns a reference to the cached copy of ``origin``, starting a
        transfer from ``source_url`` when no copy exists or is in progress.

        Raises:
            UnrecognizedURLShapeError: If ``source_url`` cannot be mapped to a path.
        """
        origin = self.normalize(origin)
        if path := await self._indexed_path(origin):
            log.debug(f"Cache hit for '{origin}': {path}")
            return Resolution(
                AdmissionOutcome.ALREADY_COMPLETE, str(CacheReference(path)), path
            )

        target = self.resolver.resolve(source_url)
        decision = await self.admission.admit(target, origin, source_url)
        if decision.task:
            self._tasks.add(decision.task)
            decision.task.add_done_callback(self._tasks.discard)
        return Resolution(
            decision.outcome, str(decision.reference), target.key, decision.task
        )

    async def _run_transfer(self, target: Target, remote_url: str, origin: str) -> bool:
        transfer = Transfer(
            target,
            remote_url,
            origin,
            downloader=self.downloader,
            registry=self.registry,
            on_complete=self._index_download,
            reporter=self.reporter,
            progress_interval=self.config.progress_interval,
            speed_smoothing=self.config.speed_smoothing,
        )
        return await transfer.run()

    async def _index_download(self, origin: str, target: Target) -> None:
        await self.cache_index.add(origin, target.key)

    # ── Player-facing queries ───────────────────────────────────

    def is_final_file_ready(self, path: str) -> bool:
        return Path(path).is_file()

    def in_flight_remote_url(self, path: str) -> str | None:
        return self.registry.remote_url(path)

    def transfer_failure(self, path: str) -> TransferFailure | None:
        return self.registry.failure(path)

    def readiness(self, path: str) -> Readiness:
        if self.is_final_file_ready(path):
            return Readiness.READY
        if path in self.registry:
            return Readiness.DOWNLOADING
        if self.registry.failure(path):
            return Readiness.FAILED
        return Readiness.MISSING

    async def playback_source(self, path: str) -> PlaybackSource:
        """
        Resolves what a player should load for ``path``: the local file once
        it is complete, otherwise the remote URL still feeding it.
        """
        path = self.media_path(path)
        video_url = path if self.is_final_file_ready(path) else None
        if video_url is None:
            video_url = self.in_flight_remote_url(path)
        return PlaybackSource(
            video_path=path,
            video_url=video_url,
            start_at=await self.last_playback_position(path),
        )

    # ── Playback positions ──────────────────────────────────────

    async def record_playback_position(self, path: str, time: float) -> None:
        await self.playback_index.update(path, time)
        log.debug(f"Playback position of '{path}' set to {time:.1f}s.")

    async def last_playback_position(self, path: str) -> float:
        return await self.playback_index.get(path)

    # ── Reporting and maintenance ───────────────────────────────

    async def cache_entries(self) -> list[CacheEntry]:
        return await self.cache_index.records()

    async def playback_positions(self) -> list[PlaybackPosition]:
        return await self.playback_index.records()

    def discard_orphaned_partials(self) -> list[Path]:
        """
        Deletes partial files under the media root that no running transfer in
        this process owns, such as leftovers of an interrupted run.
        """
        owned = {
            Path(entry.final_path).with_suffix(PARTIAL_SUFFIX)
            for entry in self.registry.active()
        }
        removed = []
        media_root = self.config.media_root
        if not media_root.is_dir():
            return removed
        for partial in media_root.rglob(f"*{PARTIAL_SUFFIX}"):
            if partial in owned:
                continue
            try:
                partial.unlink()
                removed.append(partial)
            except OSError as e:
                log.warning(f"Failed to remove orphaned partial '{partial}': {e}")
        if removed:
            log.info(f"Removed {len(removed)} orphaned partial files.")
        return removed

    # ── Lifecycle ───────────────────────────────────────────────

    async def wait_for_transfers(self) -> None:
        """Blocks until every running transfer has completed or failed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancels running transfers, which clean their partial files, and closes the pool."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            log.info(f"Cancelling {len(tasks)} running transfers...")
            await asyncio.gather(*tasks, return_exceptions=True)
        for entry in self.registry.active():
            self.registry.fail(entry.final_path, "service closed")
        await self.downloader.close()
