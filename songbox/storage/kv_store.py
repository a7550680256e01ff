"""
Key-value persistence for small JSON-encoded blobs (volume, downloads map,
favorites and history).
"""

import asyncio
import hashlib
import json
import logging
import os
import time
from pathlib import Path
from typing import Protocol

import aiofiles

from songbox.exceptions import PersistenceError

log = logging.getLogger(__name__)

VOLUME_KEY = "@app_volume"
DOWNLOADS_KEY = "@song_downloads"
FAVORITES_KEY = "@favorites_songs"
HISTORY_KEY = "@listening_history"


class PersistentStore(Protocol):
    """Async get/set of opaque string blobs keyed by name."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """An in-process store. Nothing survives the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileStore:
    """
    Stores each key in its own JSON file under a directory.

    Files are written to a temporary sibling first and then moved into place, so
    a crash mid-write never leaves a truncated value behind.
    """

    def __init__(self, store_dir: Path):
        self.store_dir = store_dir
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _get_path(self, key: str) -> Path:
        """Generates a safe filename for a given key."""
        hashed_key = hashlib.md5(key.encode("utf-8")).hexdigest()  # noqa: S324
        return self.store_dir / f"{hashed_key}.json"

    async def get(self, key: str) -> str | None:
        path = self._get_path(key)
        if not await asyncio.to_thread(path.is_file):
            return None
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                payload = json.loads(await f.read())
        except (json.JSONDecodeError, OSError) as e:
            raise PersistenceError(f"Could not read '{key}': {e}") from e

        value = payload.get("value") if isinstance(payload, dict) else None
        if value is not None and not isinstance(value, str):
            raise PersistenceError(f"Stored value for '{key}' is not a string.")
        return value

    async def set(self, key: str, value: str) -> None:
        path = self._get_path(key)
        tmp_path = path.with_suffix(".tmp")
        payload = {"key": key, "timestamp": time.time(), "value": value}
        try:
            async with self._lock:
                async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                    await f.write(json.dumps(payload))
                await asyncio.to_thread(os.replace, tmp_path, path)
        except (TypeError, OSError) as e:
            raise PersistenceError(f"Could not write '{key}': {e}") from e
        log.debug(f"Persisted '{key}' ({len(value)} chars).")
