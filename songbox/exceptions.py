"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class SongboxError(Exception):
    """Base exception for all application-specific errors."""


class LoadError(SongboxError):
    """
    Raised when a track has no resolvable audio source or the audio resource
    could not be acquired.
    """


class TransferError(SongboxError):
    """Raised when a download transfer fails."""


class TransferPaused(TransferError):
    """Raised by a pending transfer start when the transfer was paused."""


class UndownloadableSourceError(SongboxError):
    """Raised when a track's audio source is a bundled asset and can never be fetched."""


class PersistenceError(SongboxError):
    """Raised when the key-value store cannot be read or written."""


class ConfigurationError(SongboxError):
    """Raised for issues related to configuration loading or validation."""


class CatalogError(SongboxError):
    """Raised when the song catalog cannot be loaded."""


class FileIntegrityError(SongboxError):
    """Raised when a downloaded file fails a post-download integrity check."""
