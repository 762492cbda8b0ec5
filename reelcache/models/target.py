"""
Models describing where a download lives on disk and what the index files hold.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

PARTIAL_SUFFIX = ".partial"
CACHE_REFERENCE_PREFIX = "USECACHESERVER/CachedVideo::"


class MediaKind(str, Enum):
    """Classification of a download, named after its storage root."""

    MOVIE = "m"
    EPISODE = "t"


@dataclass(frozen=True)
class Target:
    """The resolved local location and metadata of a download URL."""

    final_path: Path
    partial_path: Path
    format: str
    title: str
    kind: MediaKind
    series: str | None = None

    @property
    def is_series_episode(self) -> bool:
        return self.kind is MediaKind.EPISODE

    @property
    def key(self) -> str:
        """The final path as used in indexes and cache references."""
        return self.final_path.as_posix()


@dataclass(frozen=True)
class CacheReference:
    """
    A value handed to callers telling them where to obtain a video.

    Serialized as ``USECACHESERVER/CachedVideo::<path>``; a string without the
    prefix is a direct path.
    """

    path: str
    cached: bool = True

    def __str__(self) -> str:
        return f"{CACHE_REFERENCE_PREFIX}{self.path}" if self.cached else self.path

    @classmethod
    def parse(cls, value: str) -> "CacheReference":
        if value.startswith(CACHE_REFERENCE_PREFIX):
            return cls(value[len(CACHE_REFERENCE_PREFIX) :], cached=True)
        return cls(value, cached=False)


class CacheEntry(BaseModel):
    """Maps a normalized origin identifier to a cached file."""

    origin: str
    path: str


class PlaybackPosition(BaseModel):
    """The last-watched offset, in seconds, of a cached file."""

    path: str
    time: float = Field(allow_inf_nan=False)
