"""
Pydantic model for per-track download state.
"""

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class DownloadStatus(str, Enum):
    """States of a track's download."""

    NOT_DOWNLOADED = "not_downloaded"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    ERROR = "error"


class DownloadEntry(BaseModel):
    """The download state of one track, persisted as part of the downloads map."""

    status: DownloadStatus = DownloadStatus.NOT_DOWNLOADED
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    local_uri: str | None = Field(default=None, alias="localUri")
    error: str | None = None

    class Config:
        """Pydantic model configuration."""

        frozen = True
        populate_by_name = True

    @model_validator(mode="after")
    def validate_local_uri(self) -> "DownloadEntry":
        """A local file is recorded exactly when the track is downloaded."""
        if self.status == DownloadStatus.DOWNLOADED and not self.local_uri:
            raise ValueError("A downloaded entry must record its local file.")
        if self.status != DownloadStatus.DOWNLOADED and self.local_uri:
            raise ValueError("Only downloaded entries may record a local file.")
        return self

    @property
    def is_downloaded(self) -> bool:
        return self.status == DownloadStatus.DOWNLOADED

    @property
    def is_downloading(self) -> bool:
        return self.status == DownloadStatus.DOWNLOADING

    @classmethod
    def not_downloaded(cls) -> "DownloadEntry":
        return cls()

    @classmethod
    def downloading(cls, progress: float = 0.0) -> "DownloadEntry":
        return cls(status=DownloadStatus.DOWNLOADING, progress=progress)

    @classmethod
    def downloaded(cls, local_uri: str) -> "DownloadEntry":
        return cls(status=DownloadStatus.DOWNLOADED, progress=1.0, local_uri=local_uri)

    @classmethod
    def failed(cls, reason: str) -> "DownloadEntry":
        return cls(status=DownloadStatus.ERROR, progress=0.0, error=reason)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
