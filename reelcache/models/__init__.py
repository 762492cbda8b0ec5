"""
Data Models Layer.

This package contains the pydantic models and dataclasses that define the core
data structures used throughout the application, such as configuration,
download targets, index records and transfer statistics.
"""

from .config import CacheConfig
from .stats import ProgressSnapshot, TransferStats
from .target import CacheEntry, CacheReference, MediaKind, PlaybackPosition, Target

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheReference",
    "MediaKind",
    "PlaybackPosition",
    "ProgressSnapshot",
    "Target",
    "TransferStats",
]
