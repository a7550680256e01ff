"""
The user's favorite tracks, in the order they were favorited.
"""

import json
import logging

from pydantic import ValidationError

from songbox.exceptions import PersistenceError
from songbox.models.track import Track

from .catalog import CatalogIndex
from .kv_store import FAVORITES_KEY, PersistentStore
from .writer import BackgroundWriter

log = logging.getLogger(__name__)


class FavoritesStore:
    """
    An ordered list of favorited tracks plus an id set for O(1) membership.

    The list and the set are always mutated together, so `ids` is exactly the
    set of ids in `items` and no id appears twice.
    """

    def __init__(self, store: PersistentStore, catalog: CatalogIndex):
        self.catalog = catalog
        self._writer = BackgroundWriter(store, name="favorites")
        self._items: list[Track] = []
        self._ids: set[str] = set()

    @property
    def items(self) -> tuple[Track, ...]:
        return tuple(self._items)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)

    def __len__(self) -> int:
        return len(self._items)

    async def load(self) -> None:
        """
        Restores favorites from the store.

        Legacy entries that stored only an id are resolved through the catalog;
        entries whose track is no longer in the catalog are dropped. When that
        changes anything, the cleaned list is written back.
        """
        try:
            raw = await self._writer.store.get(FAVORITES_KEY)
            loaded = json.loads(raw) if raw else []
        except (PersistenceError, json.JSONDecodeError) as e:
            log.error(f"Failed to load favorites: {e}")
            return

        if not isinstance(loaded, list):
            log.error("Stored favorites are not a list, ignoring them.")
            return

        items: list[Track] = []
        ids: set[str] = set()
        for entry in loaded:
            track = self._normalize(entry)
            if track is None or track.id in ids:
                continue
            items.append(track)
            ids.add(track.id)

        self._items = items
        self._ids = ids
        log.info(f"Loaded {len(items)} favorites.")
        if [track.to_record() for track in items] != loaded:
            log.debug("Rewriting normalized favorites.")
            self._save()

    def _normalize(self, entry) -> Track | None:
        if isinstance(entry, str):
            return self.catalog.by_id(entry)
        if not isinstance(entry, dict):
            return None
        try:
            track = Track.model_validate(entry)
        except ValidationError:
            return self.catalog.by_id(str(entry.get("id", "")))
        return track if track.id in self.catalog else None

    def _save(self) -> None:
        payload = json.dumps([track.to_record() for track in self._items])
        self._writer.schedule(FAVORITES_KEY, payload)

    def add_favorite(self, track: Track | None) -> bool:
        """Appends a track to the favorites. Returns False when nothing changed."""
        if track is None or not track.id:
            log.warning("add_favorite called without a valid track.")
            return False
        if track.id in self._ids:
            log.info(f"'{track.title}' is already a favorite.")
            return False

        self._items.append(track)
        self._ids.add(track.id)
        log.debug(f"Added favorite '{track.title}'.")
        self._save()
        return True

    def remove_favorite(self, track_id: str | None) -> bool:
        """Removes a track from the favorites. Returns False when it was absent."""
        if not track_id:
            log.warning("remove_favorite called without a track id.")
            return False
        if track_id not in self._ids:
            return False

        self._items = [t for t in self._items if t.id != track_id]
        self._ids.discard(track_id)
        log.debug(f"Removed favorite '{track_id}'.")
        self._save()
        return True

    def toggle_favorite(self, track: Track) -> bool:
        """Flips membership and returns whether the track is now a favorite."""
        if self.is_favorite(track.id):
            self.remove_favorite(track.id)
            return False
        return self.add_favorite(track)

    def is_favorite(self, track_id: str) -> bool:
        return track_id in self._ids

    async def flush(self) -> None:
        await self._writer.flush()
