"""
The per-track download state machine over a resumable transfer primitive.

Transitions: not_downloaded -> downloading -> (downloaded | error);
downloading -> not_downloaded on cancel; downloaded -> not_downloaded on
delete; error -> downloading on retry.
"""

import asyncio
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from songbox.exceptions import (
    FileIntegrityError,
    PersistenceError,
    TransferPaused,
    UndownloadableSourceError,
)
from songbox.media.integrity import FileIntegrityChecker
from songbox.media.transfer import (
    HttpTransfer,
    Transfer,
    TransferFactory,
    TransferProgress,
)
from songbox.models.download import DownloadEntry, DownloadStatus
from songbox.models.track import Track
from songbox.storage.kv_store import DOWNLOADS_KEY, PersistentStore
from songbox.storage.writer import BackgroundWriter
from songbox.utils.path import track_filename

log = logging.getLogger(__name__)

DownloadListener = Callable[[str, DownloadEntry], None]


def _ensure_downloadable(track: Track) -> None:
    if not track.is_downloadable:
        raise UndownloadableSourceError(
            f"'{track.title}' is a bundled asset and cannot be downloaded."
        )


class DownloadManager:
    """
    Owns the downloads map and the live transfers behind it.

    The map is persisted after every change. Live transfer handles are kept in
    memory only, at most one per track id.
    """

    def __init__(
        self,
        store: PersistentStore,
        download_dir: Path,
        transfer_factory: TransferFactory = HttpTransfer,
        verify_downloads: bool = False,
    ):
        self.download_dir = download_dir
        self._transfer_factory = transfer_factory
        self._verify_downloads = verify_downloads
        self._writer = BackgroundWriter(store, name="downloads")
        self._downloads: dict[str, DownloadEntry] = {}
        self._transfers: dict[str, Transfer] = {}
        self._listeners: list[DownloadListener] = []

    @property
    def downloads(self) -> dict[str, DownloadEntry]:
        return dict(self._downloads)

    @property
    def active_transfers(self) -> int:
        return len(self._transfers)

    def subscribe(self, listener: DownloadListener) -> Callable[[], None]:
        """Registers a listener for entry changes. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def load(self) -> None:
        """
        Restores the downloads map, keeping only entries whose file still exists.

        Persisted metadata never claims a file that is not actually present:
        downloaded entries pointing at missing files are dropped, and so are
        in-flight or failed entries, whose transfers did not survive the restart.
        """
        try:
            raw = await self._writer.store.get(DOWNLOADS_KEY)
            loaded = json.loads(raw) if raw else {}
        except (PersistenceError, json.JSONDecodeError) as e:
            log.error(f"Failed to load downloads: {e}")
            return

        if not isinstance(loaded, dict):
            log.error("Stored downloads are not a mapping, ignoring them.")
            return

        verified: dict[str, DownloadEntry] = {}
        for track_id, record in loaded.items():
            try:
                entry = DownloadEntry.model_validate(record)
            except ValidationError as e:
                log.warning(f"Dropping invalid download entry for '{track_id}': {e}")
                continue
            if not entry.is_downloaded:
                continue
            if await asyncio.to_thread(os.path.isfile, entry.local_uri):
                verified[track_id] = entry
            else:
                log.warning(f"Downloaded file '{entry.local_uri}' no longer exists.")

        self._downloads = verified
        log.info(f"Loaded downloads: {len(verified)} files.")
        if len(verified) != len(loaded):
            self._save()

    def _save(self) -> None:
        payload = {track_id: entry.to_record() for track_id, entry in self._downloads.items()}
        self._writer.schedule(DOWNLOADS_KEY, json.dumps(payload))

    def _notify(self, track_id: str, entry: DownloadEntry) -> None:
        for listener in list(self._listeners):
            try:
                listener(track_id, entry)
            except Exception as e:
                log.warning(f"Download listener failed: {e}")

    def _set_entry(self, track_id: str, entry: DownloadEntry, persist: bool = True) -> None:
        self._downloads[track_id] = entry
        self._notify(track_id, entry)
        if persist:
            self._save()

    def get_download_status(self, track_id: str) -> DownloadEntry:
        return self._downloads.get(track_id) or DownloadEntry.not_downloaded()

    async def resolve_local_file(self, track_id: str) -> Path | None:
        """
        The cached file for a track, if it is downloaded and still on disk.

        A downloaded entry whose file has disappeared is dropped, so the track
        reads as not downloaded and can be fetched again.
        """
        entry = self._downloads.get(track_id)
        if entry is None or not entry.is_downloaded:
            return None
        if not await asyncio.to_thread(os.path.isfile, entry.local_uri):
            log.warning(f"Cached file '{entry.local_uri}' has gone missing.")
            self._forget(track_id)
            return None
        return Path(entry.local_uri)

    def _forget(self, track_id: str) -> None:
        if self._downloads.pop(track_id, None) is not None:
            self._notify(track_id, DownloadEntry.not_downloaded())
            self._save()

    def local_path_for(self, track: Track) -> Path:
        return self.download_dir / track_filename(track)

    async def start_download(self, track: Track) -> DownloadEntry:
        """
        Downloads a track into the cache and returns its final entry.

        Bundled assets are rejected straight into the error state without any
        transfer. A second start while a transfer is live, or a start on an
        already downloaded track whose file is still on disk, leaves the entry
        untouched. If the file is gone, the track is downloaded again.
        """
        try:
            _ensure_downloadable(track)
        except UndownloadableSourceError as e:
            log.warning(str(e))
            self._set_entry(track.id, DownloadEntry.failed(str(e)))
            return self._downloads[track.id]

        # Only suspends for downloaded entries, so check the file before the
        # transfer guard.
        if await self.resolve_local_file(track.id) is not None:
            log.info(f"'{track.title}' is already downloaded.")
            return self.get_download_status(track.id)
        if track.id in self._transfers:
            log.info(f"'{track.title}' is already downloading.")
            return self.get_download_status(track.id)

        local_path = self.local_path_for(track)
        transfer: Transfer | None = None

        def on_progress(tick: TransferProgress) -> None:
            # Ticks sent before the factory returns have no transfer to match.
            if transfer is not None:
                self._on_progress(track.id, transfer, tick)

        transfer = self._transfer_factory(track.audio_source, local_path, on_progress)
        self._transfers[track.id] = transfer
        self._set_entry(track.id, DownloadEntry.downloading())
        log.info(f"Downloading '{track.title}' to '{local_path.name}'.")

        try:
            result = await transfer.start()
            if self._transfers.get(track.id) is not transfer:
                log.debug(f"Discarding result of cancelled download for '{track.id}'.")
                await self._remove_file(str(result.local_path))
                return self.get_download_status(track.id)
            if self._verify_downloads:
                await self._verify(result.local_path)
        except TransferPaused:
            log.debug(f"Download of '{track.id}' was paused.")
            return self.get_download_status(track.id)
        except asyncio.CancelledError:
            log.info(f"Download of '{track.title}' was interrupted.")
            if self._transfers.get(track.id) is transfer:
                try:
                    await transfer.pause()
                except Exception as e:
                    log.error(f"Error while pausing download of '{track.id}': {e}")
            self._finish(track.id, transfer, DownloadEntry.not_downloaded())
            raise
        except FileIntegrityError as e:
            log.error(f"Downloaded file for '{track.title}' is corrupt: {e}")
            await self._remove_file(str(local_path))
            self._finish(track.id, transfer, DownloadEntry.failed(str(e)))
        except Exception as e:
            log.error(f"Download of '{track.title}' failed: {e}")
            self._finish(track.id, transfer, DownloadEntry.failed(str(e) or type(e).__name__))
        else:
            log.info(f"Downloaded '{track.title}'.")
            self._finish(track.id, transfer, DownloadEntry.downloaded(str(result.local_path)))
        return self.get_download_status(track.id)

    def _finish(self, track_id: str, transfer: Transfer, entry: DownloadEntry) -> None:
        if self._transfers.get(track_id) is not transfer:
            return
        del self._transfers[track_id]
        self._set_entry(track_id, entry)

    def _on_progress(self, track_id: str, transfer: Transfer, tick: TransferProgress) -> None:
        if self._transfers.get(track_id) is not transfer:
            return
        current = self.get_download_status(track_id)
        if tick.total_bytes_expected <= 0:
            return
        progress = min(1.0, tick.total_bytes_written / tick.total_bytes_expected)
        if progress <= current.progress:
            return
        self._set_entry(track_id, DownloadEntry.downloading(progress), persist=False)

    async def _verify(self, local_path: Path) -> None:
        ok = await asyncio.to_thread(FileIntegrityChecker.check_audio, str(local_path))
        if not ok:
            raise FileIntegrityError(f"'{local_path.name}' is not a playable audio file.")

    async def _remove_file(self, local_uri: str) -> None:
        try:
            await asyncio.to_thread(os.remove, local_uri)
            log.debug(f"Deleted file '{local_uri}'.")
        except FileNotFoundError:
            pass
        except OSError as e:
            log.error(f"Could not delete file '{local_uri}': {e}")

    async def cancel_download(self, track_id: str) -> None:
        """Pauses the live transfer (best effort) and resets the entry."""
        transfer = self._transfers.pop(track_id, None)
        if transfer is not None:
            try:
                await transfer.pause()
                log.info(f"Paused download of '{track_id}'.")
            except Exception as e:
                log.error(f"Error while pausing download of '{track_id}': {e}")
        self._set_entry(track_id, DownloadEntry.not_downloaded())

    async def delete_download(self, track_id: str) -> None:
        """Deletes the cached file (best effort) and forgets the entry."""
        if track_id in self._transfers:
            await self.cancel_download(track_id)
        entry = self._downloads.get(track_id)
        if entry is not None and entry.local_uri:
            await self._remove_file(entry.local_uri)
        self._forget(track_id)

    async def shutdown(self) -> None:
        """Pauses every live transfer and waits for pending writes."""
        for track_id in list(self._transfers):
            transfer = self._transfers.pop(track_id)
            try:
                await transfer.pause()
            except Exception as e:
                log.error(f"Error while pausing download of '{track_id}': {e}")
            self._set_entry(track_id, DownloadEntry.not_downloaded())
        await self._writer.flush()

    async def flush(self) -> None:
        await self._writer.flush()

    @property
    def status_counts(self) -> dict[DownloadStatus, int]:
        counts = dict.fromkeys(DownloadStatus, 0)
        for entry in self._downloads.values():
            counts[entry.status] += 1
        return counts
