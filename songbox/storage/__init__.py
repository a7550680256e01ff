"""
Storage Layer.

This package handles all data persistence: the key-value store and its
background writer, the song catalog, favorites, listening history and the
configuration file.
"""

from .catalog import CatalogIndex
from .config_manager import ConfigManager
from .favorites import FavoritesStore
from .history import MAX_HISTORY_LENGTH, HistoryTracker
from .kv_store import JsonFileStore, MemoryStore, PersistentStore
from .writer import BackgroundWriter

__all__ = [
    "BackgroundWriter",
    "CatalogIndex",
    "ConfigManager",
    "FavoritesStore",
    "HistoryTracker",
    "JsonFileStore",
    "MAX_HISTORY_LENGTH",
    "MemoryStore",
    "PersistentStore",
]
