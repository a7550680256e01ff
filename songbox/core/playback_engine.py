"""
The playback engine: owns the single active audio resource, the play queue,
shuffle/repeat policy, volume, the sleep timer and track-end transitions.
"""

import asyncio
import logging
import random
from collections.abc import Sequence
from functools import partial

from songbox.exceptions import LoadError, PersistenceError
from songbox.media.audio import AudioBackend, AudioHandle, AudioSource
from songbox.media.lyrics import LyricLine, active_line_index, parse_lrc
from songbox.models.playback import PlaybackSnapshot, PlaybackStatus, RepeatMode
from songbox.models.track import Track
from songbox.storage.kv_store import VOLUME_KEY, PersistentStore
from songbox.storage.writer import BackgroundWriter

from . import queue as queue_ops
from .ports import DownloadLookup, FavoriteLookup, PlayHistoryRecorder
from .sleep_timer import SleepTimer

log = logging.getLogger(__name__)


def clamp_volume(volume: float) -> float:
    return min(1.0, max(0.0, float(volume)))


class PlaybackEngine:
    """
    Plays one track at a time from a queue.

    At most one load is in flight: a `play_song` call that arrives while a
    track is loading is dropped, not queued. The previous audio handle is
    always released before a new one is acquired. Load failures are logged
    and leave the engine paused on the attempted track; they are never raised.
    """

    def __init__(
        self,
        backend: AudioBackend,
        downloads: DownloadLookup,
        history: PlayHistoryRecorder,
        favorites: FavoriteLookup,
        store: PersistentStore,
        default_queue: Sequence[Track] = (),
        default_volume: float = 1.0,
        progress_interval_ms: int = 500,
        rng: random.Random | None = None,
    ):
        self._backend = backend
        self._downloads = downloads
        self._history = history
        self._favorites = favorites
        self._writer = BackgroundWriter(store, name="volume")
        self._rng = rng or random.Random()
        self.progress_interval_ms = progress_interval_ms

        self.active_track: Track | None = None
        self.is_playing = False
        self.is_loading = False
        self.position_millis = 0
        self.duration_millis = 0
        self.last_error: str | None = None

        self.base_queue: list[Track] = list(default_queue)
        self.queue: list[Track] = list(default_queue)
        self.shuffle_enabled = False
        self.repeat_mode = RepeatMode.OFF
        self.volume = clamp_volume(default_volume)

        self._handle: AudioHandle | None = None
        self._generation = 0
        self._sleep_timer = SleepTimer()
        self._tasks: set[asyncio.Task] = set()
        self._lyrics_cache: tuple[str | None, list[LyricLine]] = (None, [])

    # --- Lifecycle -------------------------------------------------------

    async def load(self) -> None:
        """Restores the persisted volume preference."""
        try:
            raw = await self._writer.store.get(VOLUME_KEY)
        except PersistenceError as e:
            log.error(f"Failed to load volume: {e}")
            return
        if raw is None:
            return
        try:
            self.volume = clamp_volume(float(raw))
        except ValueError:
            log.warning(f"Ignoring invalid stored volume '{raw}'.")

    async def shutdown(self) -> None:
        """Cancels the sleep timer, releases the audio handle and flushes writes."""
        await self._sleep_timer.aclose()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._release_handle()
        self.is_playing = False
        await self._writer.flush()

    # --- Loading ---------------------------------------------------------

    @property
    def has_handle(self) -> bool:
        return self._handle is not None

    async def play_song(self, track: Track | None, queue: Sequence[Track] | None = None) -> None:
        """
        Loads and starts a track, optionally replacing the queue.

        Playing the track that is already loaded toggles play/pause instead.
        """
        if self.is_loading:
            log.debug("A track is already loading, dropping play request.")
            return
        if track is None or not track.id:
            log.warning("play_song called without a valid track.")
            return
        if self.active_track is not None and track.id == self.active_track.id and self._handle:
            await self.handle_play_pause()
            return

        self.is_loading = True
        log.info(f"Loading '{track.title}'...")
        try:
            await self._release_handle()
            source = await self._resolve_source(track)
            handle = await self._acquire(source)
        except LoadError as e:
            log.error(f"Could not play '{track.title}': {e}")
            self.active_track = track
            self.is_playing = False
            self.position_millis = 0
            self.duration_millis = 0
            self.last_error = str(e)
            return
        finally:
            self.is_loading = False

        self._generation += 1
        self._handle = handle
        self.active_track = track
        self.is_playing = True
        self.last_error = None
        status = handle.status
        self.position_millis = status.position_millis
        self.duration_millis = status.duration_millis or 0
        handle.set_status_callback(partial(self._on_status, self._generation))

        self._history.add_song_to_history(track)

        if queue is not None:
            self._set_queue(queue, track)

    async def _release_handle(self) -> None:
        handle, self._handle = self._handle, None
        self._generation += 1
        if handle is None:
            return
        handle.set_status_callback(None)
        try:
            await handle.release()
        except Exception as e:
            log.warning(f"Error while releasing audio resource: {e}")

    async def _resolve_source(self, track: Track) -> AudioSource:
        local_file = await self._downloads.resolve_local_file(track.id)
        if local_file is not None:
            log.info(f"Playing offline copy '{local_file.name}'.")
            return local_file
        if track.audio_source:
            return track.audio_source
        raise LoadError(f"'{track.title}' has no playable audio source.")

    async def _acquire(self, source: AudioSource) -> AudioHandle:
        try:
            return await self._backend.acquire(
                source,
                autoplay=True,
                initial_volume=self.volume,
                progress_interval_ms=self.progress_interval_ms,
            )
        except LoadError:
            raise
        except Exception as e:
            raise LoadError(f"Audio resource could not be loaded: {e}") from e

    def _set_queue(self, queue: Sequence[Track], track: Track) -> None:
        self.base_queue = list(queue)
        if self.shuffle_enabled:
            self.queue = queue_ops.shuffled(self.base_queue, track.id, self._rng)
        else:
            self.queue = list(self.base_queue)

    # --- Status updates & track end -----------------------------------------

    def _on_status(self, generation: int, status: PlaybackStatus) -> None:
        if generation != self._generation:
            return
        if status.is_loaded:
            self.is_playing = status.is_playing
            self.position_millis = status.position_millis
            if status.duration_millis is not None:
                self.duration_millis = status.duration_millis
            if status.did_just_finish:
                self._spawn(self._handle_song_end())
        elif status.error:
            log.error(f"Playback error: {status.error}")
            self.is_playing = False
            self.last_error = status.error

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _handle_song_end(self) -> None:
        log.debug(f"Track finished, repeat mode is '{self.repeat_mode.value}'.")
        if self.repeat_mode is RepeatMode.ONE:
            await self._replay()
        else:
            await self.play_next(is_repeat_all=self.repeat_mode is RepeatMode.ALL)

    async def _replay(self) -> None:
        """Restarts the loaded resource from the beginning."""
        if self._handle is None:
            return
        try:
            await self._handle.seek(0)
            await self._handle.play()
        except Exception as e:
            log.error(f"Could not replay track: {e}")
            return
        self.position_millis = 0
        self.is_playing = True

    # --- Transport ---------------------------------------------------------

    async def handle_play_pause(self) -> None:
        if self.is_loading:
            return
        if self._handle is not None:
            try:
                if self.is_playing:
                    await self._handle.pause()
                else:
                    await self._handle.play()
            except Exception as e:
                log.error(f"Could not toggle playback: {e}")
                return
            self.is_playing = not self.is_playing
        elif self.active_track is not None:
            await self.play_song(self.active_track)

    async def seek_to(self, position_millis: int) -> None:
        if self._handle is None:
            return
        try:
            await self._handle.seek(position_millis)
        except Exception as e:
            log.error(f"Error while seeking: {e}")
            return
        self.position_millis = position_millis

    async def play_next(self, is_repeat_all: bool = False) -> None:
        """
        Advances to the next queue entry.

        Without shuffle or repeat-all, finishing the last entry pauses and
        rewinds instead of wrapping around to the first.
        """
        if self.active_track is None or not self.queue:
            return
        index = queue_ops.next_index(
            self.queue,
            self.active_track.id,
            shuffle=self.shuffle_enabled,
            repeat_all=is_repeat_all,
            rng=self._rng,
        )
        if index is None:
            log.info("Reached the end of the queue, stopping playback.")
            await self._stop_at_start()
            return
        await self._play_queue_entry(self.queue[index])

    async def play_previous(self) -> None:
        if self.active_track is None or not self.queue:
            return
        index = queue_ops.previous_index(
            self.queue,
            self.active_track.id,
            shuffle=self.shuffle_enabled,
            rng=self._rng,
        )
        await self._play_queue_entry(self.queue[index])

    async def _play_queue_entry(self, track: Track) -> None:
        if self.active_track is not None and track.id == self.active_track.id and self._handle:
            await self._replay()
        else:
            await self.play_song(track)

    async def _stop_at_start(self) -> None:
        if self._handle is not None:
            try:
                await self._handle.pause()
                await self._handle.seek(0)
            except Exception as e:
                log.error(f"Could not stop playback: {e}")
        self.is_playing = False
        self.position_millis = 0

    # --- Queue policy ------------------------------------------------------

    def toggle_shuffle(self) -> bool:
        """
        Flips shuffle and rebuilds the queue from the base queue.

        Enabling shuffles with the active track first. Disabling restores base
        order rotated to start at the active track, so "next" keeps moving
        forward from where playback is.
        """
        self.shuffle_enabled = not self.shuffle_enabled
        anchor = self.active_track.id if self.active_track else None
        if self.shuffle_enabled:
            self.queue = queue_ops.shuffled(self.base_queue, anchor, self._rng)
        else:
            self.queue = queue_ops.rotated(self.base_queue, anchor)
        log.debug(f"Shuffle {'enabled' if self.shuffle_enabled else 'disabled'}.")
        return self.shuffle_enabled

    def toggle_repeat_mode(self) -> RepeatMode:
        self.repeat_mode = self.repeat_mode.next()
        return self.repeat_mode

    # --- Sleep timer & volume ----------------------------------------------

    def set_sleep_timer(self, duration_millis: int) -> None:
        self._sleep_timer.schedule(duration_millis, self._on_sleep_timer)

    def clear_sleep_timer(self) -> bool:
        return self._sleep_timer.cancel()

    @property
    def sleep_timer_active(self) -> bool:
        return self._sleep_timer.active

    @property
    def sleep_timer_remaining_millis(self) -> int:
        return self._sleep_timer.remaining_millis

    async def _on_sleep_timer(self) -> None:
        if self._handle is not None and self.is_playing:
            await self._handle.pause()
            self.is_playing = False
        log.info("Playback paused by sleep timer.")

    async def set_song_volume(self, volume: float) -> None:
        self.volume = clamp_volume(volume)
        self._writer.schedule(VOLUME_KEY, str(self.volume))
        if self._handle is None:
            return
        try:
            await self._handle.set_volume(self.volume)
        except Exception as e:
            log.error(f"Error while changing volume: {e}")

    # --- Read model --------------------------------------------------------

    @property
    def is_favorite(self) -> bool:
        return self.active_track is not None and self._favorites.is_favorite(self.active_track.id)

    @property
    def lyrics(self) -> list[LyricLine]:
        """Timed lyrics of the active track, parsed once per track."""
        track_id = self.active_track.id if self.active_track else None
        if self._lyrics_cache[0] != track_id:
            lyrics = self.active_track.lyrics if self.active_track else None
            self._lyrics_cache = (track_id, parse_lrc(lyrics))
        return self._lyrics_cache[1]

    @property
    def current_lyric_index(self) -> int:
        return active_line_index(self.lyrics, self.position_millis)

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            active_track=self.active_track,
            is_playing=self.is_playing,
            is_loading=self.is_loading,
            position_millis=self.position_millis,
            duration_millis=self.duration_millis,
            queue_ids=tuple(t.id for t in self.queue),
            shuffle_enabled=self.shuffle_enabled,
            repeat_mode=self.repeat_mode,
            volume=self.volume,
            sleep_timer_active=self.sleep_timer_active,
            is_favorite=self.is_favorite,
            last_error=self.last_error,
        )
