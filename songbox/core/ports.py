"""
Narrow interfaces the playback engine uses to reach the other services.
"""

from pathlib import Path
from typing import Protocol

from songbox.models.track import Track


class DownloadLookup(Protocol):
    """Snapshot read into the download cache."""

    async def resolve_local_file(self, track_id: str) -> Path | None: ...


class PlayHistoryRecorder(Protocol):
    """Write-only access to the listening history."""

    def add_song_to_history(self, track: Track) -> None: ...


class FavoriteLookup(Protocol):
    def is_favorite(self, track_id: str) -> bool: ...
