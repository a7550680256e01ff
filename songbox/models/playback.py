"""
Plain data structures describing playback policy and state.
"""

from dataclasses import dataclass, field
from enum import Enum

from .track import Track


class RepeatMode(str, Enum):
    """Repeat policy applied when a track finishes on its own."""

    OFF = "off"
    ALL = "all"
    ONE = "one"

    def next(self) -> "RepeatMode":
        """Cycles off -> all -> one -> off."""
        order = (RepeatMode.OFF, RepeatMode.ALL, RepeatMode.ONE)
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class PlaybackStatus:
    """A status update delivered by an audio handle."""

    is_loaded: bool
    is_playing: bool = False
    position_millis: int = 0
    duration_millis: int | None = None
    did_just_finish: bool = False
    error: str | None = None


@dataclass(frozen=True)
class PlaybackSnapshot:
    """A read-only view of the playback engine for display."""

    active_track: Track | None
    is_playing: bool
    is_loading: bool
    position_millis: int
    duration_millis: int
    queue_ids: tuple[str, ...] = field(default_factory=tuple)
    shuffle_enabled: bool = False
    repeat_mode: RepeatMode = RepeatMode.OFF
    volume: float = 1.0
    sleep_timer_active: bool = False
    is_favorite: bool = False
    last_error: str | None = None
