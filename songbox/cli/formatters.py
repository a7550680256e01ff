"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from songbox.media.integrity import FileIntegrityChecker
from songbox.media.lyrics import LyricLine
from songbox.models.download import DownloadEntry, DownloadStatus
from songbox.models.track import Track
from songbox.utils.formatting import format_progress, format_size, format_time

STATUS_STYLES = {
    DownloadStatus.NOT_DOWNLOADED: "dim",
    DownloadStatus.DOWNLOADING: "cyan",
    DownloadStatus.DOWNLOADED: "green",
    DownloadStatus.ERROR: "red",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Run `songbox init --catalog <path>` to create a configuration.",
            "• Check the values with `songbox --show-config`.",
        ],
        "CatalogError": [
            "• Make sure the catalog file exists and is a JSON array of tracks.",
            "• Every track needs at least an `id`.",
        ],
        "PersistenceError": [
            "• Check that the configuration directory is writable.",
            "• A corrupt store file can be deleted; it will be recreated.",
        ],
        "TransferError": [
            "• A network connection issue occurred.",
            "• Retry the download in a few minutes.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in config_data.items())
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_tracks_table(
    tracks: list[Track],
    title: str,
    downloads: dict[str, DownloadEntry] | None = None,
    favorite_ids: frozenset[str] | None = None,
):
    """Displays a list of tracks with their offline and favorite markers."""
    console = Console()
    if not tracks:
        console.print(f"[yellow]{title}: nothing to show.[/yellow]")
        return

    downloads = downloads or {}
    favorite_ids = favorite_ids or frozenset()
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Artist")
    table.add_column("Album")
    table.add_column("", justify="center")

    for track in tracks:
        markers = ""
        if track.id in favorite_ids:
            markers += "[red]♥[/red]"
        entry = downloads.get(track.id)
        if entry is not None and entry.is_downloaded:
            markers += "[green]↓[/green]"
        table.add_row(track.id, track.title, track.artist, track.album, markers)

    console.print(table)


def _file_size(path: str) -> str:
    try:
        return format_size(Path(path).stat().st_size)
    except OSError:
        return "?"


def print_downloads_table(downloads: dict[str, DownloadEntry], titles: dict[str, str]):
    """Displays the state of every known download."""
    console = Console()
    if not downloads:
        console.print("[yellow]No downloads yet.[/yellow]")
        return

    table = Table(title="Downloads", box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("File / Error", overflow="fold")

    for track_id, entry in downloads.items():
        style = STATUS_STYLES[entry.status]
        length = size = ""
        if entry.is_downloaded:
            length = format_time(FileIntegrityChecker.duration_millis(entry.local_uri))
            size = _file_size(entry.local_uri)
        table.add_row(
            track_id,
            titles.get(track_id, "?"),
            f"[{style}]{entry.status.value}[/{style}]",
            format_progress(entry.progress),
            length,
            size,
            entry.local_uri or entry.error or "",
        )

    console.print(table)


def print_lyrics(track: Track, lines: list[LyricLine]):
    """Displays the timed lyrics of a track."""
    console = Console()
    if not lines:
        console.print(f"[yellow]No timed lyrics for '{track.title}'.[/yellow]")
        return

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim", justify="right")
    table.add_column()
    for line in lines:
        table.add_row(format_time(line.time_millis), line.text)

    console.print(
        Panel(table, title=f"{track.title} - {track.artist}", border_style="cyan")
    )
