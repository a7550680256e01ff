"""
Utilities for handling file paths of cached downloads.
"""

import re
from pathlib import Path
from urllib.parse import urlparse

from pathvalidate import sanitize_filename

from songbox.models.track import Track

AUDIO_EXTENSIONS = {"mp3", "m4a", "aac", "flac", "ogg", "opus", "wav"}
DEFAULT_EXTENSION = "mp3"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def guess_extension(url: str) -> str:
    """Takes the extension from the URL path when it names a known audio format."""
    suffix = Path(urlparse(url).path).suffix.lstrip(".").lower()
    return suffix if suffix in AUDIO_EXTENSIONS else DEFAULT_EXTENSION


def track_filename(track: Track) -> str:
    """
    Builds a deterministic, filesystem-safe filename from the track id and title.

    Every non-alphanumeric character of the title becomes an underscore, so the
    same track always maps to the same cache file.
    """
    slug = re.sub(r"[^a-zA-Z0-9]", "_", track.title)
    ext = guess_extension(track.audio_source) if track.is_downloadable else DEFAULT_EXTENSION
    return sanitize_filename(f"{track.id}_{slug}.{ext}", replacement_text="_")
