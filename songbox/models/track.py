"""
Pydantic models for catalog tracks.
"""

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class BundledAsset(BaseModel):
    """An opaque handle to audio shipped with the application. Never downloadable."""

    asset: str

    class Config:
        frozen = True


class Track(BaseModel):
    """An immutable catalog record for one song."""

    id: str
    title: str = "Unknown Title"
    artist: str = "Unknown Artist"
    album: str = ""
    genre: tuple[str, ...] = ()
    image_source: str | BundledAsset | None = None
    audio_source: str | BundledAsset | None = Field(
        default=None,
        validation_alias=AliasChoices("audioSource", "audio_source", "trackUrl"),
        serialization_alias="audioSource",
    )
    lyrics: str | None = None

    class Config:
        """Pydantic model configuration."""

        frozen = True
        alias_generator = to_camel
        populate_by_name = True
        str_strip_whitespace = True

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v):
        """Accepts numeric ids from hand-written catalogs and rejects empty ones."""
        if isinstance(v, int) and not isinstance(v, bool):
            v = str(v)
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Track id must be a non-empty string.")
        return v

    @field_validator("genre", mode="before")
    @classmethod
    def validate_genre(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,) if v.strip() else ()
        return v

    @property
    def is_downloadable(self) -> bool:
        """Only remote locators can be fetched; bundled assets never can."""
        return isinstance(self.audio_source, str) and bool(self.audio_source)

    def to_record(self) -> dict:
        """Serializes the track the way it is stored in the catalog and favorites."""
        return self.model_dump(mode="json", by_alias=True)
