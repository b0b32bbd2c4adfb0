import uuid
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

UNKNOWN = "Unknown"


def generate_id() -> str:
    """Generate a unique record ID."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CatalogRecord(BaseModel):
    """Base for persisted records: camelCase on the wire, snake_case in code."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Song(CatalogRecord):
    id: str = Field(default_factory=generate_id, frozen=True)
    title: str
    artist: str = UNKNOWN
    album: str = UNKNOWN
    genre: str = UNKNOWN
    duration: float = 0
    album_art: Optional[str] = None
    lyrics: Optional[str] = None
    storage_key: Optional[str] = Field(default=None, frozen=True)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("artist", "album", "genre", mode="before")
    @classmethod
    def default_unknown(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNKNOWN
        return value

    @field_validator("duration", mode="before")
    @classmethod
    def default_duration(cls, value):
        return 0 if value is None else value

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title or artist."""
        needle = (query or "").lower()
        return needle in self.title.lower() or needle in self.artist.lower()

    def __repr__(self):
        return f"<Song(id={self.id}, title='{self.title}', artist='{self.artist}')>"


class Playlist(CatalogRecord):
    id: str = Field(default_factory=generate_id, frozen=True)
    name: str = Field(..., min_length=1)
    songs: List[Song] = Field(default_factory=list)

    def contains(self, song_id: str) -> bool:
        return any(song.id == song_id for song in self.songs)


# Request bodies

class PlaylistCreate(CatalogRecord):
    name: Optional[str] = None


class PlaylistAddSong(CatalogRecord):
    song_id: Optional[str] = None


class ErrorResponse(BaseModel):
    detail: str
    error_code: str = Field(..., description="Internal error code for tracking")
