"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class PlayerConfig(BaseModel):
    """A validated configuration model for the application."""

    # Catalog & Storage
    catalog_path: str
    download_dir: str = ""

    # Playback Settings
    default_volume: float = 1.0
    progress_interval_ms: int = 500

    # Download Settings
    max_concurrent_downloads: int = 4
    verify_downloads: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("catalog_path")
    @classmethod
    def validate_catalog_path(cls, v: str) -> str:
        if not v:
            raise ValueError("Catalog path cannot be empty.")
        return v

    @field_validator("default_volume")
    @classmethod
    def validate_volume(cls, v: float) -> float:
        """Ensures the volume is a fraction of full scale."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("Default volume must be between 0.0 and 1.0.")
        return v

    @field_validator("progress_interval_ms")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        if v < 50:
            raise ValueError("Progress interval must be at least 50 ms.")
        return v

    @field_validator("max_concurrent_downloads")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent downloads."""
        if v < 1 or v > 32:
            raise ValueError("Max concurrent downloads must be between 1 and 32.")
        return v

    @property
    def config_dir(self) -> Path:
        return Path(self.config_path)

    @property
    def resolved_download_dir(self) -> Path:
        """The cache directory for downloaded audio, defaulting under the config dir."""
        if self.download_dir:
            return Path(self.download_dir).expanduser()
        return self.config_dir / "downloads"

    @property
    def store_dir(self) -> Path:
        return self.config_dir / "store"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
