"""
Media Processing Layer.

This package is responsible for moving media bytes from the network to disk
and for validating the downloaded payload.
"""

from .downloader import Downloader
from .integrity import FileIntegrityChecker

__all__ = ["Downloader", "FileIntegrityChecker"]
