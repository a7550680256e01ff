"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from songbox import __version__
from songbox.core.services import PlayerServices, create_services
from songbox.exceptions import SongboxError
from songbox.media.lyrics import parse_lrc
from songbox.models.config import PlayerConfig
from songbox.models.download import DownloadStatus
from songbox.models.track import Track
from songbox.storage.catalog import CatalogIndex
from songbox.storage.config_manager import ConfigManager

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_downloads_table,
    print_lyrics,
    print_tracks_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("songbox")

app = typer.Typer(
    name="songbox",
    help=(
        "A personal music player with an offline download cache. Use 'songbox"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "songbox"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict | None = None) -> PlayerConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except SongboxError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


async def _open_services(config: PlayerConfig) -> PlayerServices:
    try:
        return await create_services(config)
    except SongboxError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _find_tracks(catalog: CatalogIndex, track_ids: list[str]) -> list[Track]:
    tracks = []
    for track_id in track_ids:
        track = catalog.by_id(track_id)
        if track is None:
            console.print(f"[yellow]⚠️  No track with id '{track_id}' in the catalog.[/yellow]")
            continue
        tracks.append(track)
    return tracks


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Songbox CLI"""
    if version:
        console.print(f"[bold]songbox[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("songbox").setLevel(log_level)

    if show_config:
        config = _load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    catalog: Path = typer.Option(  # noqa: B008
        ..., "--catalog", "-c", help="Path to the JSON song catalog."
    ),
    download_dir: str = typer.Option(
        "", "--download-dir", "-d", help="Where downloaded songs are cached."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Create the configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        CatalogIndex.from_json_file(catalog.expanduser())
        ConfigManager(CONFIG_FILE).save_new_config(
            {"catalog_path": str(catalog.expanduser().resolve()), "download_dir": download_dir}
        )
    except SongboxError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


def _browse(
    catalog: CatalogIndex,
    query: str,
    artist: str | None,
    album: str | None,
    genre: str | None,
) -> list[Track]:
    """Intersects the free-text search with the artist, album and genre views."""
    found = catalog.search(query)
    views = ((artist, catalog.by_artist), (album, catalog.by_album), (genre, catalog.by_genre))
    for value, view in views:
        if value is not None:
            keep = {t.id for t in view(value)}
            found = [t for t in found if t.id in keep]
    return found


@app.command()
def songs(
    query: str = typer.Argument("", help="Filter by title, artist or album."),
    artist: str | None = typer.Option(None, "--artist", help="Only songs by this artist."),
    album: str | None = typer.Option(None, "--album", help="Only songs from this album."),
    genre: str | None = typer.Option(None, "--genre", help="Only songs tagged with this genre."),
):
    """List, search or browse the song catalog."""
    config = _load_config()
    labels = [f"'{query}'"] if query else []
    filters = (("artist", artist), ("album", album), ("genre", genre))
    labels += [f"{name} '{value}'" for name, value in filters if value]

    async def _songs():
        services = await _open_services(config)
        try:
            print_tracks_table(
                _browse(services.catalog, query, artist, album, genre),
                title="Songs" if not labels else f"Songs matching {', '.join(labels)}",
                downloads=services.downloads.downloads,
                favorite_ids=services.favorites.ids,
            )
        finally:
            await services.shutdown()

    asyncio.run(_songs())


@app.command(name="download")
def download_command(
    track_ids: list[str] = typer.Argument(..., help="Ids of the songs to download."),  # noqa: B008
    workers: int | None = typer.Option(
        None,
        "-w",
        "--workers",
        help="Number of simultaneous downloads (overrides the config).",
    ),
    verify: bool | None = typer.Option(
        None,
        "--verify/--no-verify",
        help="Check every downloaded file with mutagen.",
    ),
):
    """Download songs into the offline cache."""
    cli_options = {
        key: value
        for key, value in {
            "max_concurrent_downloads": workers,
            "verify_downloads": verify,
        }.items()
        if value is not None
    }
    config = _load_config(cli_options)

    async def _download():
        services = await _open_services(config)
        semaphore = asyncio.Semaphore(config.max_concurrent_downloads)
        try:
            tracks = _find_tracks(services.catalog, track_ids)
            if not tracks:
                raise typer.Exit(code=1)

            async with ProgressManager(console) as progress_manager:
                unsubscribe = services.downloads.subscribe(progress_manager.on_entry_changed)
                try:
                    for track in tracks:
                        progress_manager.add_track(track)

                    async def _one(track: Track):
                        async with semaphore:
                            return await services.downloads.start_download(track)

                    await asyncio.gather(*(_one(track) for track in tracks))
                finally:
                    unsubscribe()

            stats = progress_manager.get_statistics()
            console.print(
                f"[green]✓ {stats['completed']} downloaded[/green], "
                f"[red]{stats['failed']} failed[/red]"
            )
        finally:
            await services.shutdown()

    asyncio.run(_download())


@app.command()
def downloads():
    """Show the offline cache."""
    config = _load_config()

    async def _downloads():
        services = await _open_services(config)
        try:
            titles = {t.id: t.title for t in services.catalog.list_all()}
            print_downloads_table(services.downloads.downloads, titles)
            counts = services.downloads.status_counts
            console.print(
                f"[dim]{counts[DownloadStatus.DOWNLOADED]} cached in "
                f"{services.downloads.download_dir}[/dim]"
            )
        finally:
            await services.shutdown()

    asyncio.run(_downloads())


@app.command(name="delete-download")
def delete_download(
    track_id: str = typer.Argument(..., help="Id of the song to remove from the cache."),
):
    """Delete a downloaded song from the offline cache."""
    config = _load_config()

    async def _delete():
        services = await _open_services(config)
        try:
            if not services.downloads.get_download_status(track_id).is_downloaded:
                console.print(f"[yellow]'{track_id}' is not downloaded.[/yellow]")
                return
            await services.downloads.delete_download(track_id)
            console.print(f"[green]✓ Removed '{track_id}' from the cache.[/green]")
        finally:
            await services.shutdown()

    asyncio.run(_delete())


@app.command()
def favorite(
    track_id: str = typer.Argument(..., help="Id of the song to add to favorites."),
):
    """Add a song to favorites."""
    config = _load_config()

    async def _favorite():
        services = await _open_services(config)
        try:
            tracks = _find_tracks(services.catalog, [track_id])
            if tracks and services.favorites.add_favorite(tracks[0]):
                console.print(f"[green]♥ Added '{tracks[0].title}' to favorites.[/green]")
            elif tracks:
                console.print(f"[yellow]'{tracks[0].title}' is already a favorite.[/yellow]")
        finally:
            await services.shutdown()

    asyncio.run(_favorite())


@app.command()
def unfavorite(
    track_id: str = typer.Argument(..., help="Id of the song to remove from favorites."),
):
    """Remove a song from favorites."""
    config = _load_config()

    async def _unfavorite():
        services = await _open_services(config)
        try:
            if services.favorites.remove_favorite(track_id):
                console.print(f"[green]✓ Removed '{track_id}' from favorites.[/green]")
            else:
                console.print(f"[yellow]'{track_id}' is not a favorite.[/yellow]")
        finally:
            await services.shutdown()

    asyncio.run(_unfavorite())


@app.command()
def favorites():
    """List favorite songs in the order they were added."""
    config = _load_config()

    async def _favorites():
        services = await _open_services(config)
        try:
            print_tracks_table(
                list(services.favorites.items),
                title="Favorites",
                downloads=services.downloads.downloads,
            )
        finally:
            await services.shutdown()

    asyncio.run(_favorites())


@app.command()
def history():
    """List recently played songs, newest first."""
    config = _load_config()

    async def _history():
        services = await _open_services(config)
        try:
            print_tracks_table(
                services.history.tracks,
                title="Recently played",
                downloads=services.downloads.downloads,
                favorite_ids=services.favorites.ids,
            )
        finally:
            await services.shutdown()

    asyncio.run(_history())


@app.command()
def lyrics(
    track_id: str = typer.Argument(..., help="Id of the song."),
):
    """Show the timed lyrics of a song."""
    config = _load_config()
    try:
        catalog = CatalogIndex.from_json_file(Path(config.catalog_path).expanduser())
    except SongboxError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    tracks = _find_tracks(catalog, [track_id])
    if not tracks:
        raise typer.Exit(code=1)
    print_lyrics(tracks[0], parse_lrc(tracks[0].lyrics))
