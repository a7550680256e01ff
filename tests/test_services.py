"""Tests for service construction and shutdown."""

import json

import pytest

from songbox.core.services import create_services
from songbox.models.config import PlayerConfig
from songbox.storage.kv_store import FAVORITES_KEY, HISTORY_KEY, VOLUME_KEY, MemoryStore

from .conftest import FakeAudioBackend, FakeTransferFactory


@pytest.fixture
def config(tmp_path):
    catalog_path = tmp_path / "catalog.json"
    catalog_path.write_text(
        json.dumps(
            [
                {"id": "1", "title": "One", "audioSource": "https://cdn.example.com/1.mp3"},
                {"id": "2", "title": "Two", "audioSource": "https://cdn.example.com/2.mp3"},
            ]
        )
    )
    return PlayerConfig(catalog_path=str(catalog_path), config_path=str(tmp_path / "cfg"))


class TestCreateServices:
    """Test wiring and load order."""

    async def test_loads_stores_before_playback(self, config):
        """Test that favorites, history and volume are restored at construction."""
        store = MemoryStore(
            {
                FAVORITES_KEY: json.dumps(["2"]),
                HISTORY_KEY: json.dumps(["1"]),
                VOLUME_KEY: "0.5",
            }
        )
        services = await create_services(config, store=store, backend=FakeAudioBackend())
        try:
            assert services.favorites.ids == {"2"}
            assert [t.id for t in services.history.tracks] == ["1"]
            assert services.playback.volume == 0.5
            assert [t.id for t in services.playback.queue] == ["1", "2"]
        finally:
            await services.shutdown()

    async def test_without_backend_has_no_playback(self, config):
        """Test that headless use skips the playback engine."""
        services = await create_services(config, store=MemoryStore())
        try:
            assert services.playback is None
            assert len(services.catalog) == 2
        finally:
            await services.shutdown()

    async def test_default_store_is_file_backed(self, config):
        """Test that the store defaults to JSON files under the config dir."""
        services = await create_services(config)
        try:
            services.favorites.add_favorite(services.catalog.by_id("1"))
        finally:
            await services.shutdown()
        assert any(config.store_dir.iterdir())

    async def test_played_tracks_reach_history(self, config):
        """Test that the engine records plays in the shared history."""
        store = MemoryStore()
        services = await create_services(config, store=store, backend=FakeAudioBackend())
        try:
            await services.playback.play_song(services.catalog.by_id("2"))
        finally:
            await services.shutdown()
        assert json.loads(await store.get(HISTORY_KEY)) == ["2"]

    async def test_downloads_feed_offline_playback(self, config):
        """Test that a downloaded track plays from its cached file."""
        backend = FakeAudioBackend()
        services = await create_services(
            config,
            store=MemoryStore(),
            backend=backend,
            transfer_factory=FakeTransferFactory(),
        )
        try:
            track = services.catalog.by_id("1")
            entry = await services.downloads.start_download(track)
            await services.playback.play_song(track)
        finally:
            await services.shutdown()
        assert str(backend.acquired_sources[0]) == entry.local_uri
