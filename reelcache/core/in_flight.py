"""
Process-wide registry of transfers that have been admitted but not yet settled.
"""

import logging
import threading
import time
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class InFlightEntry:
    """A running transfer, keyed by the final path it will produce."""

    final_path: str
    remote_url: str
    started_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class TransferFailure:
    """The terminal state of a transfer that did not produce a file."""

    final_path: str
    reason: str
    failed_at: float = field(default_factory=time.time)


class InFlightRegistry:
    """
    Maps final paths to the remote URLs currently feeding them, so a player can
    stream from the source while the local copy is still being written.

    Entries are removed once their transfer completes or fails; failures are
    remembered until the same target is admitted again.
    """

    def __init__(self):
        self._entries: dict[str, InFlightEntry] = {}
        self._failures: dict[str, TransferFailure] = {}
        self._lock = threading.Lock()

    def register(self, final_path: str, remote_url: str) -> InFlightEntry:
        entry = InFlightEntry(final_path, remote_url)
        with self._lock:
            self._entries[final_path] = entry
            self._failures.pop(final_path, None)
        return entry

    def remote_url(self, final_path: str) -> str | None:
        with self._lock:
            entry = self._entries.get(final_path)
            return entry.remote_url if entry else None

    def __contains__(self, final_path: str) -> bool:
        with self._lock:
            return final_path in self._entries

    def complete(self, final_path: str) -> None:
        with self._lock:
            self._entries.pop(final_path, None)

    def fail(self, final_path: str, reason: str) -> TransferFailure:
        failure = TransferFailure(final_path, reason)
        with self._lock:
            self._entries.pop(final_path, None)
            self._failures[final_path] = failure
        log.debug(f"Transfer for '{final_path}' marked failed: {reason}")
        return failure

    def failure(self, final_path: str) -> TransferFailure | None:
        with self._lock:
            return self._failures.get(final_path)

    def active(self) -> list[InFlightEntry]:
        with self._lock:
            return list(self._entries.values())
