"""Tests for the key-value stores and the background writer."""

import asyncio
import json
import logging

import pytest

from songbox.exceptions import PersistenceError
from songbox.storage.kv_store import VOLUME_KEY, JsonFileStore, MemoryStore
from songbox.storage.writer import BackgroundWriter

from .conftest import FailingStore


class TestMemoryStore:
    """Test the in-process store."""

    async def test_get_missing_key(self):
        """Test that an unknown key reads as None."""
        assert await MemoryStore().get("nope") is None

    async def test_set_then_get(self):
        """Test a simple write and read."""
        store = MemoryStore()
        await store.set(VOLUME_KEY, "0.5")
        assert await store.get(VOLUME_KEY) == "0.5"
        assert VOLUME_KEY in store


class TestJsonFileStore:
    """Test the file-backed store."""

    async def test_roundtrip_survives_new_instance(self, tmp_path):
        """Test that values written by one instance are read by another."""
        await JsonFileStore(tmp_path).set("@favorites_songs", "[]")
        assert await JsonFileStore(tmp_path).get("@favorites_songs") == "[]"

    async def test_missing_key_is_none(self, tmp_path):
        """Test that an unknown key reads as None."""
        assert await JsonFileStore(tmp_path).get("@listening_history") is None

    async def test_no_temporary_files_left(self, tmp_path):
        """Test that the temporary file is moved into place."""
        store = JsonFileStore(tmp_path)
        await store.set("a", "1")
        await store.set("a", "2")
        files = list(tmp_path.iterdir())
        assert len(files) == 1
        assert files[0].suffix == ".json"
        assert json.loads(files[0].read_text())["value"] == "2"

    async def test_corrupt_file_raises(self, tmp_path):
        """Test that unreadable content surfaces as a PersistenceError."""
        store = JsonFileStore(tmp_path)
        await store.set("a", "1")
        next(tmp_path.iterdir()).write_text("{not json")
        with pytest.raises(PersistenceError):
            await store.get("a")

    async def test_creates_directory(self, tmp_path):
        """Test that the store directory is created on construction."""
        store_dir = tmp_path / "nested" / "store"
        JsonFileStore(store_dir)
        assert store_dir.is_dir()


class SlowStore(MemoryStore):
    """Sleeps longer on earlier writes to expose reordering."""

    def __init__(self):
        super().__init__()
        self.history: list[str] = []

    async def set(self, key, value):
        await asyncio.sleep(0.01 if value == "first" else 0)
        self.history.append(value)
        await super().set(key, value)


class TestBackgroundWriter:
    """Test fire-and-forget persistence."""

    async def test_writes_land_in_schedule_order(self):
        """Test that a slow earlier write is not overtaken by a later one."""
        store = SlowStore()
        writer = BackgroundWriter(store)
        writer.schedule("k", "first")
        writer.schedule("k", "second")
        await writer.flush()
        assert store.history == ["first", "second"]
        assert await store.get("k") == "second"

    async def test_flush_waits_for_pending(self):
        """Test that flush leaves nothing pending."""
        store = MemoryStore()
        writer = BackgroundWriter(store)
        writer.schedule("k", "v")
        assert writer.pending == 1
        await writer.flush()
        assert writer.pending == 0
        assert await store.get("k") == "v"

    async def test_failure_is_logged_not_raised(self, caplog):
        """Test that a failed write is logged and swallowed."""
        writer = BackgroundWriter(FailingStore(), name="favorites")
        with caplog.at_level(logging.ERROR):
            writer.schedule("k", "v")
            await writer.flush()
        assert "Failed to save favorites" in caplog.text
