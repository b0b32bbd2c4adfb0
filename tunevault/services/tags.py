"""
Local tag extraction using mutagen.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from mutagen import File as MutagenFile
from mutagen import MutagenError

from ..core.errors import TagExtractionError

logger = logging.getLogger(__name__)


@dataclass
class TagInfo:
    """Tags read from an audio file. Missing values stay None."""
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    duration: float = 0


def _first(tags, key: str) -> Optional[str]:
    values = tags.get(key) if tags is not None else None
    if not values:
        return None
    value = str(values[0]).strip()
    return value or None


def extract_tags(file_path: str) -> TagInfo:
    """
    Read embedded tags from an audio file.

    Args:
        file_path: Path to audio file

    Returns:
        TagInfo with whatever tags the file carries

    Raises:
        TagExtractionError: If the format is unsupported or the tags cannot be parsed
    """
    try:
        audio = MutagenFile(file_path, easy=True)
    except (MutagenError, OSError) as e:
        raise TagExtractionError(f"Failed to parse {file_path}: {e}") from e

    if audio is None:
        raise TagExtractionError(f"Unsupported audio format: {file_path}")

    info = getattr(audio, "info", None)
    duration = float(getattr(info, "length", 0) or 0)
    tags = audio.tags

    return TagInfo(
        title=_first(tags, "title"),
        artist=_first(tags, "artist"),
        album=_first(tags, "album"),
        genre=_first(tags, "genre"),
        duration=duration,
    )
