"""
A bounded, most-recent-first record of played tracks.
"""

import json
import logging

from songbox.exceptions import PersistenceError
from songbox.models.track import Track

from .catalog import CatalogIndex
from .kv_store import HISTORY_KEY, PersistentStore
from .writer import BackgroundWriter

log = logging.getLogger(__name__)

MAX_HISTORY_LENGTH = 100


class HistoryTracker:
    """
    Keeps up to MAX_HISTORY_LENGTH distinct track ids, newest first.

    Replaying a track moves it to the front instead of adding a second entry.
    Readers only see tracks resolved through the catalog; ids that are no
    longer in the catalog are skipped.
    """

    def __init__(
        self,
        store: PersistentStore,
        catalog: CatalogIndex,
        max_length: int = MAX_HISTORY_LENGTH,
    ):
        self.catalog = catalog
        self.max_length = max_length
        self._writer = BackgroundWriter(store, name="listening history")
        self._ids: list[str] = []

    @property
    def tracks(self) -> list[Track]:
        resolved = (self.catalog.by_id(track_id) for track_id in self._ids)
        return [track for track in resolved if track is not None]

    def __len__(self) -> int:
        return len(self._ids)

    async def load(self) -> None:
        """Restores the id list from the store."""
        try:
            raw = await self._writer.store.get(HISTORY_KEY)
            loaded = json.loads(raw) if raw else []
        except (PersistenceError, json.JSONDecodeError) as e:
            log.error(f"Failed to load listening history: {e}")
            return

        if not isinstance(loaded, list):
            log.error("Stored listening history is not a list, ignoring it.")
            return

        ids = [track_id for track_id in loaded if isinstance(track_id, str) and track_id]
        self._ids = list(dict.fromkeys(ids))[: self.max_length]
        log.info(f"Loaded listening history: {len(self.tracks)} tracks.")

    def add_song_to_history(self, track: Track | None) -> None:
        """Moves the track to the front of the history, dropping the oldest entry if full."""
        if track is None or not track.id:
            return

        ids = [track_id for track_id in self._ids if track_id != track.id]
        ids.insert(0, track.id)
        del ids[self.max_length :]
        self._ids = ids
        self._writer.schedule(HISTORY_KEY, json.dumps(ids))

    async def flush(self) -> None:
        await self._writer.flush()
