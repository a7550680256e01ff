"""
The read-only song catalog, loaded once per session.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from songbox.exceptions import CatalogError
from songbox.models.track import Track

log = logging.getLogger(__name__)


class CatalogIndex:
    """An immutable, ordered list of tracks with an id lookup."""

    def __init__(self, tracks: Iterable[Track]):
        ordered: list[Track] = []
        by_id: dict[str, Track] = {}
        for track in tracks:
            if track.id in by_id:
                log.warning(f"Duplicate track id '{track.id}' in catalog, keeping the first.")
                continue
            by_id[track.id] = track
            ordered.append(track)
        self._tracks = tuple(ordered)
        self._by_id = by_id

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "CatalogIndex":
        """Builds a catalog from raw track records, rejecting invalid ones."""
        tracks = []
        for position, record in enumerate(records):
            try:
                tracks.append(Track.model_validate(record))
            except ValidationError as e:
                raise CatalogError(f"Invalid track record at position {position}: {e}") from e
        return cls(tracks)

    @classmethod
    def from_json_file(cls, path: Path) -> "CatalogIndex":
        """Loads a catalog from a JSON array of track records."""
        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CatalogError(f"Could not read catalog '{path}': {e}") from e
        if not isinstance(records, list):
            raise CatalogError(f"Catalog '{path}' must contain a JSON array of tracks.")

        catalog = cls.from_records(records)
        log.debug(f"Loaded {len(catalog)} tracks from catalog '{path}'.")
        return catalog

    def list_all(self) -> tuple[Track, ...]:
        return self._tracks

    def by_id(self, track_id: str) -> Track | None:
        return self._by_id.get(track_id)

    def search(self, query: str) -> list[Track]:
        """Case-insensitive match on title, artist or album, in catalog order."""
        needle = query.strip().lower()
        if not needle:
            return list(self._tracks)
        return [
            t
            for t in self._tracks
            if needle in t.title.lower()
            or needle in t.artist.lower()
            or needle in t.album.lower()
        ]

    def by_artist(self, artist: str) -> list[Track]:
        """Every track by exactly this artist, ignoring case."""
        name = artist.strip().casefold()
        return [t for t in self._tracks if t.artist.casefold() == name]

    def by_album(self, album: str) -> list[Track]:
        name = album.strip().casefold()
        return [t for t in self._tracks if name and t.album.casefold() == name]

    def by_genre(self, genre: str) -> list[Track]:
        """Tracks tagged with the genre. A track may carry several genres."""
        name = genre.strip().casefold()
        return [t for t in self._tracks if any(g.casefold() == name for g in t.genre)]

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._by_id

    def __len__(self) -> int:
        return len(self._tracks)
