"""
Core application engine.

This package contains the playback engine with its queue algebra and sleep
timer, the download manager, the narrow ports between them and the service
wiring that builds everything once per process.
"""

from .download_manager import DownloadManager
from .playback_engine import PlaybackEngine
from .services import PlayerServices, create_services

__all__ = ["DownloadManager", "PlaybackEngine", "PlayerServices", "create_services"]
