"""
Data Models Layer.

This package contains the Pydantic models and plain data structures shared by
the stores, the download manager and the playback engine.
"""

from .config import PlayerConfig
from .download import DownloadEntry, DownloadStatus
from .playback import PlaybackSnapshot, PlaybackStatus, RepeatMode
from .track import BundledAsset, Track

__all__ = [
    "BundledAsset",
    "DownloadEntry",
    "DownloadStatus",
    "PlaybackSnapshot",
    "PlaybackStatus",
    "PlayerConfig",
    "RepeatMode",
    "Track",
]
