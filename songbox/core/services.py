"""
Constructs the application services once per process, in dependency order.

Favorites, history and downloads are created and loaded first because the
playback engine reads their state from its first call onwards.
"""

import logging
import random
from dataclasses import dataclass
from pathlib import Path

from songbox.media.audio import AudioBackend
from songbox.media.transfer import HttpTransfer, TransferFactory, close_connection_pool
from songbox.models.config import PlayerConfig
from songbox.storage.catalog import CatalogIndex
from songbox.storage.favorites import FavoritesStore
from songbox.storage.history import HistoryTracker
from songbox.storage.kv_store import JsonFileStore, PersistentStore

from .download_manager import DownloadManager
from .playback_engine import PlaybackEngine

log = logging.getLogger(__name__)


@dataclass
class PlayerServices:
    config: PlayerConfig
    catalog: CatalogIndex
    store: PersistentStore
    favorites: FavoritesStore
    history: HistoryTracker
    downloads: DownloadManager
    playback: PlaybackEngine | None = None

    async def shutdown(self) -> None:
        """Stops playback, pauses live transfers and flushes every pending write."""
        if self.playback is not None:
            await self.playback.shutdown()
        await self.downloads.shutdown()
        await self.favorites.flush()
        await self.history.flush()
        await close_connection_pool()
        log.debug("Services shut down.")


async def create_services(
    config: PlayerConfig,
    *,
    catalog: CatalogIndex | None = None,
    store: PersistentStore | None = None,
    backend: AudioBackend | None = None,
    transfer_factory: TransferFactory = HttpTransfer,
    rng: random.Random | None = None,
) -> PlayerServices:
    """
    Builds and loads all services.

    Order: catalog, store, then favorites/history/downloads (loaded), then the
    playback engine when an audio backend is available.
    """
    if catalog is None:
        catalog = CatalogIndex.from_json_file(Path(config.catalog_path).expanduser())
    if store is None:
        store = JsonFileStore(config.store_dir)

    favorites = FavoritesStore(store, catalog)
    history = HistoryTracker(store, catalog)
    downloads = DownloadManager(
        store,
        config.resolved_download_dir,
        transfer_factory=transfer_factory,
        verify_downloads=config.verify_downloads,
    )
    await favorites.load()
    await history.load()
    await downloads.load()

    services = PlayerServices(
        config=config,
        catalog=catalog,
        store=store,
        favorites=favorites,
        history=history,
        downloads=downloads,
    )

    if backend is not None:
        playback = PlaybackEngine(
            backend,
            downloads=downloads,
            history=history,
            favorites=favorites,
            store=store,
            default_queue=catalog.list_all(),
            default_volume=config.default_volume,
            progress_interval_ms=config.progress_interval_ms,
            rng=rng,
        )
        await playback.load()
        services.playback = playback

    return services
