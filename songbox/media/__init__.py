"""
Media Layer.

This package holds the external media contracts (audio resources and file
transfers), the HTTP transfer implementation, file integrity checks and
timed-lyrics parsing.
"""

from .audio import AudioBackend, AudioHandle, AudioSource
from .integrity import FileIntegrityChecker
from .lyrics import LyricLine, active_line_index, parse_lrc
from .transfer import (
    HttpTransfer,
    Transfer,
    TransferFactory,
    TransferProgress,
    TransferResult,
    close_connection_pool,
)

__all__ = [
    "AudioBackend",
    "AudioHandle",
    "AudioSource",
    "FileIntegrityChecker",
    "HttpTransfer",
    "LyricLine",
    "Transfer",
    "TransferFactory",
    "TransferProgress",
    "TransferResult",
    "active_line_index",
    "close_connection_pool",
    "parse_lrc",
]
