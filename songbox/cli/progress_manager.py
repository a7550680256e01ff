"""
Renders live download progress with a Rich Progress display, driven by the
download manager's entry listeners.
"""

import logging

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)

from songbox.models.download import DownloadEntry, DownloadStatus
from songbox.models.track import Track

log = logging.getLogger("songbox")


class ProgressManager:
    """One progress bar per track, updated from download entry changes."""

    def __init__(self, console: Console):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._tasks: dict[str, TaskID] = {}
        self._descriptions: dict[str, str] = {}
        self._stats = {"completed": 0, "failed": 0}

    async def __aenter__(self):
        self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()
        return False

    def add_track(self, track: Track) -> None:
        if track.id not in self._tasks:
            description = f"{track.artist} - {track.title}"
            self._descriptions[track.id] = description
            self._tasks[track.id] = self.progress.add_task(description, total=1.0)

    def on_entry_changed(self, track_id: str, entry: DownloadEntry) -> None:
        """Download listener: moves the bar and marks the final state."""
        task_id = self._tasks.get(track_id)
        if task_id is None:
            return
        if entry.status == DownloadStatus.DOWNLOADING:
            self.progress.update(task_id, completed=entry.progress)
        elif entry.status == DownloadStatus.DOWNLOADED:
            self.progress.update(task_id, completed=1.0)
            self._stats["completed"] += 1
        elif entry.status == DownloadStatus.ERROR:
            self.progress.update(
                task_id, description=f"[red]✗ {self._descriptions[track_id]}[/red]"
            )
            self._stats["failed"] += 1
            log.warning(f"[red]✗ {entry.error}[/red]")

    def get_statistics(self) -> dict[str, int]:
        return dict(self._stats)
