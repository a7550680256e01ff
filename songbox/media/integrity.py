"""
Provides methods for checking the integrity of downloaded media files.
"""

import logging

import mutagen
from mutagen import MutagenError

log = logging.getLogger(__name__)


class FileIntegrityChecker:
    """A collection of static methods for validating media file integrity."""

    @staticmethod
    def check_audio(filepath: str) -> bool:
        """
        Performs a basic integrity check on a downloaded audio file.

        Checks if mutagen recognizes the format and finds valid stream info.

        Args:
            filepath: Path to the audio file.

        Returns:
            True if the file appears to be a valid audio file, False otherwise.
        """
        try:
            audio = mutagen.File(filepath)
        except MutagenError as e:
            log.warning(f"Integrity check failed for '{filepath}': {e}")
            return False
        except Exception as e:
            log.debug(f"Integrity check failed for '{filepath}' with unexpected error: {e}")
            return False

        if audio is None:
            log.warning(f"Integrity check failed for '{filepath}': Unknown audio format.")
            return False
        if audio.info and audio.info.length > 0:
            return True
        log.warning(f"Integrity check failed for '{filepath}': No valid stream info.")
        return False

    @staticmethod
    def duration_millis(filepath: str) -> int | None:
        """Reads the stream length of an audio file, if mutagen can parse it."""
        try:
            audio = mutagen.File(filepath)
        except Exception as e:
            log.debug(f"Could not read duration of '{filepath}': {e}")
            return None
        if audio is None or not audio.info:
            return None
        return int(audio.info.length * 1000)
