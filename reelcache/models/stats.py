"""
Dataclasses for tracking the progress and speed of a single transfer.
"""

import time
from dataclasses import dataclass, field

from reelcache.utils.formatting import format_remaining, format_size


@dataclass(frozen=True)
class ProgressSnapshot:
    """A point-in-time view of a transfer, produced once per monitor tick."""

    title: str
    current_bytes: int
    total_bytes: int
    percent: float
    speed_bps: float
    remaining_seconds: float | None
    finished: bool = False

    def describe(self) -> str:
        """Renders the human-readable progress line."""
        return (
            f"Downloading {self.title} - {format_size(self.current_bytes)} of "
            f"{format_size(self.total_bytes)} - {self.percent:.2f}% - "
            f"{format_remaining(self.remaining_seconds)} Remaining"
        )


@dataclass
class TransferStats:
    """
    Tracks the size and speed of one transfer.

    The speed is exponentially smoothed: each sample is blended with the
    previous smoothed rate, ``smoothing`` being the weight on the previous
    value.
    """

    title: str
    total_bytes: int
    smoothing: float = 0.25

    started_at: float = field(default_factory=time.monotonic)
    current_bytes: int = 0
    sample_speed_bps: float = 0.0
    smoothed_speed_bps: float = 0.0
    _last_bytes: int = field(default=0, repr=False)
    _last_time: float = field(default=0.0, repr=False)

    def __post_init__(self):
        self._last_time = self.started_at

    def update(self, size: int, now: float | None = None) -> ProgressSnapshot:
        """
        Records the current size of the partial file and returns a snapshot.

        Args:
            size: Bytes on disk so far. Zero is counted as one byte.
            now: A monotonic timestamp; defaults to ``time.monotonic()``.
        """
        now = time.monotonic() if now is None else now
        size = max(size, 1)
        elapsed = now - self._last_time

        if elapsed > 0:
            self.sample_speed_bps = (size - self._last_bytes) / elapsed
            self.smoothed_speed_bps = (
                self.smoothing * self.smoothed_speed_bps
                + (1 - self.smoothing) * self.sample_speed_bps
            )

        self.current_bytes = size
        self._last_bytes = size
        self._last_time = now
        return self.snapshot()

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.current_bytes / self.total_bytes * 100

    @property
    def remaining_seconds(self) -> float | None:
        """Estimated seconds left, or None when the estimate is unbounded."""
        if self.smoothed_speed_bps <= 0:
            return None
        remaining = (self.total_bytes - self.current_bytes) / self.smoothed_speed_bps
        return remaining if remaining > 0 else None

    def snapshot(self, finished: bool = False) -> ProgressSnapshot:
        return ProgressSnapshot(
            title=self.title,
            current_bytes=self.current_bytes,
            total_bytes=self.total_bytes,
            percent=self.percent,
            speed_bps=self.smoothed_speed_bps,
            remaining_seconds=self.remaining_seconds,
            finished=finished,
        )
