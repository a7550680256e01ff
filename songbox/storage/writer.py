"""
Fire-and-forget persistence for the in-memory stores.
"""

import asyncio
import logging

from songbox.exceptions import PersistenceError

from .kv_store import PersistentStore

log = logging.getLogger(__name__)


class BackgroundWriter:
    """
    Writes values to a PersistentStore in background tasks.

    In-memory state stays authoritative: callers update their state first and
    then schedule the write. Writes scheduled on one writer land in the order
    they were scheduled, and a failed write is logged and dropped.
    """

    def __init__(self, store: PersistentStore, name: str = "store"):
        self.store = store
        self.name = name
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    def schedule(self, key: str, value: str) -> asyncio.Task:
        """Starts a background write of `value` under `key`."""
        task = asyncio.create_task(self._write(key, value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _write(self, key: str, value: str) -> None:
        async with self._lock:
            try:
                await self.store.set(key, value)
            except PersistenceError as e:
                log.error(f"Failed to save {self.name}: {e}")
            except Exception as e:
                log.error(f"Unexpected error while saving {self.name}: {e}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def flush(self) -> None:
        """Waits until every scheduled write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
