"""
Decides whether a requested target needs a new transfer.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from enum import Enum
from typing import Any

from reelcache.core.in_flight import InFlightRegistry
from reelcache.models.target import CacheReference, Target
from reelcache.storage.index import CacheIndex

log = logging.getLogger(__name__)

Launcher = Callable[[Target, str, str], Coroutine[Any, Any, bool]]


class AdmissionOutcome(str, Enum):
    ALREADY_COMPLETE = "already_complete"
    ALREADY_IN_FLIGHT = "already_in_flight"
    START_NEW = "start_new"


@dataclass
class AdmissionDecision:
    outcome: AdmissionOutcome
    reference: CacheReference
    task: asyncio.Task | None = None


class DownloadAdmission:
    """
    Starts at most one transfer per target path.

    A target counts as taken when its final file or its partial file exists on
    disk, or when a transfer for it is registered in flight. The check and the
    launch happen under one lock.
    """

    def __init__(
        self, cache_index: CacheIndex, registry: InFlightRegistry, launcher: Launcher
    ):
        self.cache_index = cache_index
        self.registry = registry
        self.launcher = launcher
        self._lock = asyncio.Lock()

    async def admit(
        self, target: Target, origin: str, remote_url: str
    ) -> AdmissionDecision:
        reference = CacheReference(target.key)
        async with self._lock:
            if target.final_path.exists():
                outcome = AdmissionOutcome.ALREADY_COMPLETE
            elif target.partial_path.exists() or target.key in self.registry:
                outcome = AdmissionOutcome.ALREADY_IN_FLIGHT
            else:
                self.registry.register(target.key, remote_url)
                task = asyncio.create_task(
                    self.launcher(target, remote_url, origin),
                    name=f"transfer:{target.key}",
                )
                log.debug(f"Started transfer of '{target.key}' for '{origin}'.")
                return AdmissionDecision(AdmissionOutcome.START_NEW, reference, task)

        log.info(
            f"[yellow]○ Ignoring {target.final_path.name}[/yellow] "
            f"(already exists or is in progress)"
        )
        if await self.cache_index.lookup(origin) != target.key:
            await self.cache_index.add(origin, target.key)
        return AdmissionDecision(outcome, reference)
