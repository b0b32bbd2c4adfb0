"""
Streaming proxy: resolve a Song to its remote object and relay the bytes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Optional

from ..core.config import Settings
from ..core.errors import AudioNotFound, StorageUnavailable, StreamingFailed
from ..core.store import CatalogStore
from ..models.models import Song
from .storage import RemoteStorageClient, StoredObject, get_storage_client

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_TYPE = "audio/mpeg"


@dataclass
class AudioStream:
    song: Song
    body: Iterator[bytes]
    media_type: str = DEFAULT_AUDIO_TYPE
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


def audio_media_type(content_type: Optional[str]) -> str:
    if content_type and content_type.startswith("audio/"):
        return content_type
    return DEFAULT_AUDIO_TYPE


def relay(song: Song, chunks: Iterator[bytes]) -> Iterator[bytes]:
    """Pass chunks through unmodified; a remote failure ends the body and is logged once."""
    try:
        for chunk in chunks:
            yield chunk
    except Exception as e:
        logger.error(f"Streaming failed mid-transfer for song {song.id}: {str(e)}")


class StreamingProxy:
    def __init__(self, config: Settings, catalog: CatalogStore,
                 storage_factory: Optional[Callable[[], RemoteStorageClient]] = None):
        self.catalog = catalog
        self.storage_factory = storage_factory or (lambda: get_storage_client(config))

    async def open(self, song_id: str, byte_range: Optional[str] = None) -> AudioStream:
        """
        Open the audio stream of a Song.

        Args:
            song_id: Catalog id of the song
            byte_range: Optional HTTP Range header value forwarded to storage

        Raises:
            SongNotFound: No song with this id
            AudioNotFound: The song has no remote-storage handle
            StorageUnavailable: Storage client could not be created
            StreamingFailed: The remote object could not be opened
        """
        song = await self.catalog.get_song(song_id)
        if not song.storage_key:
            logger.error(f"No storage key for song: {song.title}")
            raise AudioNotFound()

        try:
            storage = await asyncio.to_thread(self.storage_factory)
        except StorageUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to initialize remote storage: {str(e)}")
            raise StorageUnavailable() from e

        try:
            stored: StoredObject = await asyncio.to_thread(storage.open_stream, song.storage_key, byte_range)
        except Exception as e:
            logger.error(f"Streaming error for song {song.id}: {str(e)}")
            raise StreamingFailed() from e

        headers = {"Accept-Ranges": "bytes"}
        if stored.content_length is not None:
            headers["Content-Length"] = str(stored.content_length)
        if stored.content_range:
            headers["Content-Range"] = stored.content_range

        return AudioStream(
            song=song,
            body=relay(song, stored.body),
            media_type=audio_media_type(stored.content_type),
            status_code=206 if stored.is_partial else 200,
            headers=headers,
        )
