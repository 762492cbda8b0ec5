"""
Storage Layer.

This package handles all data persistence: the configuration file, the cache
index that maps origins to downloaded files, and the playback-position index.
"""

from .config_manager import ConfigManager
from .index import CacheIndex, PlaybackIndex

__all__ = ["CacheIndex", "ConfigManager", "PlaybackIndex"]
