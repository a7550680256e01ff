"""
The audio resource contract the playback engine relies on.

A concrete backend (a desktop player, a test double, ...) acquires one handle
per loaded track. The handle reports progress through a status callback.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from songbox.models.playback import PlaybackStatus
from songbox.models.track import BundledAsset

AudioSource = Path | str | BundledAsset
StatusCallback = Callable[[PlaybackStatus], None]


class AudioHandle(Protocol):
    """One live, loaded audio resource."""

    @property
    def status(self) -> PlaybackStatus: ...

    def set_status_callback(self, callback: StatusCallback | None) -> None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def seek(self, position_millis: int) -> None: ...

    async def set_volume(self, volume: float) -> None: ...

    async def release(self) -> None: ...


class AudioBackend(Protocol):
    """Creates audio handles for local files, remote URLs or bundled assets."""

    async def acquire(
        self,
        source: AudioSource,
        *,
        autoplay: bool,
        initial_volume: float,
        progress_interval_ms: int = 500,
    ) -> AudioHandle: ...
