"""Shared fixtures and test doubles for the audio backend, transfers and ports."""

import asyncio
import random
from dataclasses import replace
from pathlib import Path

import pytest

from songbox.exceptions import PersistenceError, TransferError, TransferPaused
from songbox.media.transfer import TransferProgress, TransferResult
from songbox.models.playback import PlaybackStatus
from songbox.models.track import BundledAsset, Track
from songbox.storage.catalog import CatalogIndex
from songbox.storage.kv_store import MemoryStore


def make_track(track_id: str, **overrides) -> Track:
    fields = {
        "id": track_id,
        "title": f"Song {track_id}",
        "artist": "Artist",
        "album": "Album",
        "audio_source": f"https://cdn.example.com/{track_id}.mp3",
    }
    fields.update(overrides)
    return Track(**fields)


class FakeAudioHandle:
    """Records every call and lets tests push status updates."""

    def __init__(self, source, volume: float, autoplay: bool, duration_millis: int):
        self.source = source
        self.volume = volume
        self.calls: list = []
        self.released = False
        self.callback = None
        self._status = PlaybackStatus(
            is_loaded=True,
            is_playing=autoplay,
            position_millis=0,
            duration_millis=duration_millis,
        )

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    def set_status_callback(self, callback) -> None:
        self.callback = callback

    async def play(self) -> None:
        self.calls.append("play")
        self._status = replace(self._status, is_playing=True)

    async def pause(self) -> None:
        self.calls.append("pause")
        self._status = replace(self._status, is_playing=False)

    async def seek(self, position_millis: int) -> None:
        self.calls.append(("seek", position_millis))
        self._status = replace(self._status, position_millis=position_millis)

    async def set_volume(self, volume: float) -> None:
        self.calls.append(("volume", volume))
        self.volume = volume

    async def release(self) -> None:
        self.released = True

    def emit(self, **changes) -> None:
        self._status = replace(self._status, **changes)
        if self.callback:
            self.callback(self._status)

    def finish(self) -> None:
        self.emit(
            is_playing=False,
            position_millis=self._status.duration_millis,
            did_just_finish=True,
        )


class FakeAudioBackend:
    """Hands out FakeAudioHandles; can fail or block on demand."""

    def __init__(self, duration_millis: int = 180_000):
        self.duration_millis = duration_millis
        self.handles: list[FakeAudioHandle] = []
        self.acquired_sources: list = []
        self.fail_with: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def acquire(self, source, *, autoplay, initial_volume, progress_interval_ms=500):
        self.acquired_sources.append(source)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        handle = FakeAudioHandle(source, initial_volume, autoplay, self.duration_millis)
        self.handles.append(handle)
        return handle

    @property
    def live_handles(self) -> list[FakeAudioHandle]:
        return [h for h in self.handles if not h.released]


class FakeDownloadLookup:
    def __init__(self, files: dict[str, Path] | None = None):
        self.files = dict(files or {})

    async def resolve_local_file(self, track_id: str) -> Path | None:
        return self.files.get(track_id)


class RecordingHistory:
    def __init__(self):
        self.played: list[str] = []

    def add_song_to_history(self, track: Track) -> None:
        self.played.append(track.id)


class FakeFavorites:
    def __init__(self, ids=()):
        self.ids = set(ids)

    def is_favorite(self, track_id: str) -> bool:
        return track_id in self.ids


class FakeTransfer:
    """Writes `total_bytes` to the destination in `chunks` progress ticks."""

    def __init__(self, url, destination: Path, on_progress, *, chunks=4, total_bytes=400,
                 fail_with=None, gate=None, report_total=True):
        self.url = url
        self.destination = destination
        self.on_progress = on_progress
        self.chunks = chunks
        self.total_bytes = total_bytes
        self.fail_with = fail_with
        self.gate = gate
        self.report_total = report_total
        self.paused = False
        self.pause_calls = 0

    async def start(self) -> TransferResult:
        expected = self.total_bytes if self.report_total else -1
        for i in range(1, self.chunks + 1):
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            if self.paused:
                raise TransferPaused("paused")
            self.on_progress(TransferProgress(i * self.total_bytes // self.chunks, expected))
        if self.fail_with is not None:
            raise self.fail_with
        self.destination.parent.mkdir(parents=True, exist_ok=True)
        self.destination.write_bytes(b"\0" * self.total_bytes)
        return TransferResult(local_path=self.destination)

    async def pause(self) -> None:
        self.pause_calls += 1
        self.paused = True
        if self.gate is not None:
            self.gate.set()


class FakeTransferFactory:
    """Builds FakeTransfers and remembers them."""

    def __init__(self, **options):
        self.options = options
        self.transfers: list[FakeTransfer] = []

    def __call__(self, url, destination, on_progress) -> FakeTransfer:
        transfer = FakeTransfer(url, destination, on_progress, **self.options)
        self.transfers.append(transfer)
        return transfer


class FailingStore:
    """A PersistentStore whose every call fails."""

    async def get(self, key):
        raise PersistenceError(f"cannot read {key}")

    async def set(self, key, value):
        raise PersistenceError(f"cannot write {key}")


@pytest.fixture
def tracks() -> list[Track]:
    return [make_track(str(i)) for i in range(1, 6)]


@pytest.fixture
def bundled_track() -> Track:
    return make_track("bundled", title="Bundled", audio_source=BundledAsset(asset="intro.mp3"))


@pytest.fixture
def catalog(tracks, bundled_track) -> CatalogIndex:
    return CatalogIndex([*tracks, bundled_track])


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def transfer_error() -> TransferError:
    return TransferError("connection reset")
