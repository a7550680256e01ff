"""
A single cancellable deferred action, used to pause playback after a delay.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress

log = logging.getLogger(__name__)


class SleepTimer:
    """Holds at most one pending timer. Scheduling a new one cancels the old one."""

    def __init__(self):
        self._task: asyncio.Task | None = None
        self._deadline: float | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def remaining_millis(self) -> int:
        if not self.active or self._deadline is None:
            return 0
        return max(0, int((self._deadline - time.monotonic()) * 1000))

    def schedule(self, duration_millis: int, action: Callable[[], Awaitable[None]]) -> None:
        """Runs `action` once after `duration_millis`, replacing any pending timer."""
        self.cancel()
        delay = max(0, duration_millis) / 1000
        self._deadline = time.monotonic() + delay
        self._task = asyncio.create_task(self._run(delay, action))
        log.info(f"Sleep timer set for {duration_millis} ms.")

    async def _run(self, delay: float, action: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        self._deadline = None
        try:
            await action()
        except Exception as e:
            log.error(f"Sleep timer action failed: {e}")

    def cancel(self) -> bool:
        """Cancels the pending timer. Returns True if one was pending."""
        if not self.active:
            self._task = None
            self._deadline = None
            return False
        self._task.cancel()
        self._task = None
        self._deadline = None
        log.info("Sleep timer cleared.")
        return True

    async def aclose(self) -> None:
        """Cancels the pending timer and waits for it to unwind."""
        task = self._task
        self.cancel()
        if task is not None:
            with suppress(asyncio.CancelledError):
                await task
