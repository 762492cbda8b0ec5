"""
Utilities for handling file paths and URL parsing.
"""

import logging
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from pathvalidate import sanitize_filename

from reelcache.exceptions import UnrecognizedURLShapeError
from reelcache.models.target import PARTIAL_SUFFIX, MediaKind, Target

log = logging.getLogger(__name__)


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def normalize_origin(origin: str, base: str = "") -> str:
    """
    Normalizes an origin URL into the identifier used as the cache key.

    Query strings and fragments are dropped. When ``base`` is given, the path is
    re-rooted onto it so mirrors of the same page share one key.
    """
    parts = urlsplit(origin.strip())
    if base:
        return f"{base.rstrip('/')}{parts.path}"
    if not parts.scheme:
        return parts.path
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class PathResolver:
    """
    Derives a Target from a download URL of the form
    ``scheme://host/<prefix>/<kind>/<series>/<file>[?query]``.

    A kind segment starting with ``m`` marks a movie, stored under
    ``<root>/m/``; anything else is an episode, stored under
    ``<root>/t/<series>/``.
    """

    KIND_INDEX = 1
    SERIES_INDEX = 2
    FILE_INDEX = 3

    def __init__(self, media_root: Path):
        self.media_root = Path(media_root)

    def resolve(self, download_url: str) -> Target:
        """
        Resolves a download URL and creates its storage directories.

        Raises:
            UnrecognizedURLShapeError: If the URL lacks the expected segments.
        """
        parts = urlsplit(download_url)
        if not parts.scheme or not parts.netloc:
            raise UnrecognizedURLShapeError(download_url, "not an absolute URL")

        segments = parts.path.split("/")[1:]
        if len(segments) <= self.FILE_INDEX:
            raise UnrecognizedURLShapeError(
                download_url,
                f"expected at least {self.FILE_INDEX + 1} path segments, "
                f"got {len(segments)}",
            )

        kind_segment = segments[self.KIND_INDEX]
        series_segment = segments[self.SERIES_INDEX]
        file_segment = segments[self.FILE_INDEX]
        if not (kind_segment and series_segment and file_segment):
            raise UnrecognizedURLShapeError(
                download_url, "empty kind, series or file segment"
            )
        if "." not in file_segment.strip("."):
            raise UnrecognizedURLShapeError(
                download_url, f"file segment '{file_segment}' has no extension"
            )

        kind = MediaKind.MOVIE if kind_segment.startswith("m") else MediaKind.EPISODE
        stem, ext = file_segment.rsplit(".", 1)
        stem = sanitize_filename(stem)
        ext = sanitize_filename(ext)
        if not stem or not ext:
            raise UnrecognizedURLShapeError(
                download_url, f"cannot derive a file name from '{file_segment}'"
            )

        directory = self.media_root / kind.value
        series = None
        if kind is MediaKind.EPISODE:
            series = sanitize_filename(series_segment)
            if not series:
                raise UnrecognizedURLShapeError(download_url, "unusable series segment")
            directory = directory / series
            title = f"{series_segment.replace('.', ' ')} {stem}"
        else:
            title = self._movie_title(file_segment)

        create_dir(directory)

        return Target(
            final_path=directory / f"{stem}.{ext}",
            partial_path=directory / f"{stem}{PARTIAL_SUFFIX}",
            format=ext,
            title=title,
            kind=kind,
            series=series,
        )

    @staticmethod
    def _movie_title(file_segment: str) -> str:
        """
        Keeps the dot-separated words before the second-to-last one, so
        ``The.Movie.2020.1080p.mp4`` becomes ``The Movie 2020``.
        """
        words = file_segment.split(".")
        if len(words) > 2:
            return " ".join(words[:-2])
        return words[0]
