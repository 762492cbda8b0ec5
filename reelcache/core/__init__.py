"""
Core engine of the cache.

The `MediaCacheService` owns all shared state and is the only entry point for
callers. It delegates the admit-or-skip decision to `DownloadAdmission` and
runs each admitted download as a `Transfer` task.
"""

from .admission import AdmissionDecision, AdmissionOutcome, DownloadAdmission
from .cache_service import MediaCacheService, PlaybackSource, Readiness, Resolution
from .in_flight import InFlightRegistry

__all__ = [
    "AdmissionDecision",
    "AdmissionOutcome",
    "DownloadAdmission",
    "InFlightRegistry",
    "MediaCacheService",
    "PlaybackSource",
    "Readiness",
    "Resolution",
]
