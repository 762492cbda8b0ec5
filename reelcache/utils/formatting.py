"""
Helper functions for formatting data into human-readable strings.
"""

import math

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def _round_half_up(value: float, places: int = 2) -> float:
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def format_size(bytes_size: float) -> str:
    """
    Formats bytes into a human-readable size string (e.g., '1 MB', '1.5 KB').

    Values are rounded half-up to two decimals and trailing zeros are dropped.
    """
    if bytes_size <= 0:
        return "0 B"
    size = float(bytes_size)
    i = 0
    while size >= 1024 and i < len(SIZE_UNITS) - 1:
        size /= 1024
        i += 1
    text = f"{_round_half_up(size):.2f}".rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[i]}"


def format_remaining(seconds: float | None) -> str:
    """Formats an ETA as 'Xm Ys'; unknown or non-positive estimates render as '∞'."""
    if seconds is None or not math.isfinite(seconds):
        return "∞"
    s = int(seconds)
    if s <= 0:
        return "∞"
    minutes, secs = divmod(s, 60)
    return f"{minutes}m {secs}s"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)
