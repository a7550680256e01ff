"""
Resumable file transfers over HTTP, streamed to disk with aiofiles.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import aiofiles
import aiohttp

from songbox.exceptions import TransferError, TransferPaused
from songbox.utils.path import create_dir

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


@dataclass(frozen=True)
class TransferProgress:
    """One progress tick. `total_bytes_expected` is -1 when the size is unknown."""

    total_bytes_written: int
    total_bytes_expected: int


@dataclass(frozen=True)
class TransferResult:
    local_path: Path


ProgressCallback = Callable[[TransferProgress], None]


class Transfer(Protocol):
    """A resumable download of one remote file to one local path."""

    async def start(self) -> TransferResult: ...

    async def pause(self) -> None: ...


TransferFactory = Callable[[str, Path, ProgressCallback], Transfer]


async def get_connection_pool(max_connections: int = 8) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_connections * 2,
            limit_per_host=max_connections,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug(f"Created download pool with limit_per_host={max_connections}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared download connection pool closed.")


class HttpTransfer:
    """
    Downloads a URL into `destination` through a `.part` file.

    Pausing cancels the stream but keeps the partial file; the next `start()`
    asks the server for the remaining bytes with a Range request.
    """

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(
        self,
        url: str,
        destination: Path,
        on_progress: ProgressCallback | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.url = url
        self.destination = destination
        self.partial_path = destination.with_name(destination.name + ".part")
        self._on_progress = on_progress
        self._session = session
        self._task: asyncio.Task | None = None
        self._paused = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> TransferResult:
        """Runs the transfer to completion. Raises TransferPaused if paused meanwhile."""
        if self.is_running:
            raise TransferError(f"Transfer of '{self.url}' is already running.")

        self._paused = False
        self._task = asyncio.create_task(self._download())
        try:
            return await self._task
        except asyncio.CancelledError:
            if self._paused:
                raise TransferPaused(f"Transfer of '{self.url}' was paused.") from None
            raise

    async def pause(self) -> None:
        """Stops the running stream, keeping what was written so far."""
        self._paused = True
        if self.is_running:
            self._task.cancel()
            await asyncio.wait([self._task])
            log.debug(f"Paused transfer of '{self.destination.name}'.")

    def _report(self, written: int, expected: int) -> None:
        if self._on_progress:
            self._on_progress(TransferProgress(written, expected))

    async def _download(self) -> TransferResult:
        session = self._session or await get_connection_pool()
        try:
            await asyncio.to_thread(create_dir, self.destination.parent)
            offset = 0
            if await asyncio.to_thread(self.partial_path.is_file):
                offset = (await asyncio.to_thread(self.partial_path.stat)).st_size

            headers = {"Range": f"bytes={offset}-"} if offset else {}
            async with session.get(self.url, headers=headers, allow_redirects=True) as response:
                response.raise_for_status()

                if offset and response.status != 206:
                    log.debug(
                        f"Server ignored range request for '{self.destination.name}', "
                        "restarting from zero."
                    )
                    offset = 0

                expected = -1
                if response.content_length is not None:
                    expected = offset + response.content_length

                mode = "ab" if offset else "wb"
                written = offset
                self._report(written, expected)
                async with aiofiles.open(self.partial_path, mode) as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        written += len(chunk)
                        self._report(written, expected)

            await asyncio.to_thread(os.replace, self.partial_path, self.destination)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransferError(f"Download of '{self.url}' failed: {e}") from e
        except OSError as e:
            raise TransferError(f"Could not write '{self.destination}': {e}") from e

        log.debug(f"Transfer complete: '{self.destination.name}' ({written} bytes)")
        return TransferResult(local_path=self.destination)
