"""
Metadata enrichment client.

Bundles the three metadata sources the ingestion pipeline consults: local
tag extraction, album art / genre resolution, and lyrics resolution. Each
method raises on failure; deciding what is best-effort is the pipeline's job.
"""

import asyncio
import logging
from typing import Optional

from ..core.config import Settings, settings
from .lyrics_service import LyricsService
from .musicbrainz import AlbumArtResult, MusicBrainzClient
from .tags import TagInfo, extract_tags

logger = logging.getLogger(__name__)


class MetadataEnricher:
    def __init__(self, config: Settings,
                 musicbrainz: Optional[MusicBrainzClient] = None,
                 lyrics: Optional[LyricsService] = None):
        self.musicbrainz = musicbrainz or MusicBrainzClient(config)
        self.lyrics = lyrics or LyricsService(config)

    async def extract_tags(self, file_path: str) -> TagInfo:
        return await asyncio.to_thread(extract_tags, file_path)

    async def lookup_album_art(self, title: str, artist: str) -> AlbumArtResult:
        return await asyncio.to_thread(self.musicbrainz.lookup, title, artist)

    async def lookup_lyrics(self, title: str, artist: str) -> Optional[str]:
        return await self.lyrics.get_lyrics(title, artist)


# Create global instance
metadata_enricher = MetadataEnricher(settings)
