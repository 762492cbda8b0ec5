"""A local media-download cache with playback-position tracking."""

__version__ = "0.3.0"
