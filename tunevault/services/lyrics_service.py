import logging
from typing import Optional

import httpx

from ..core.config import Settings
from ..core.errors import EnrichmentError

logger = logging.getLogger(__name__)


class LyricsService:
    def __init__(self, config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the lyrics service.

        Args:
            config (Settings): Application settings (LRCLIB base URL, timeout)
            transport (Optional[httpx.AsyncBaseTransport]): Custom transport, used by tests
        """
        self.base_url = config.LRCLIB_BASE_URL.rstrip("/")
        self.timeout = config.HTTP_TIMEOUT
        self.transport = transport
        self.headers = {
            "User-Agent": f"{config.MUSICBRAINZ_APP_NAME}/{config.MUSICBRAINZ_APP_VERSION} ({config.MUSICBRAINZ_CONTACT})"
        }

    async def get_lyrics(self, title: str, artist: str) -> Optional[str]:
        """Fetch plain (unsynchronized) lyrics for an exact title and artist.

        Returns None when the service has no entry for the song.
        """
        params = {"track_name": title, "artist_name": artist}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                transport=self.transport,
            ) as client:
                response = await client.get("/get", params=params)
                if response.status_code == 404:
                    logger.info(f"No lyrics found for {title} by {artist}")
                    return None
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EnrichmentError(f"LRCLIB lookup failed: {e}") from e

        lyrics = data.get("plainLyrics") if isinstance(data, dict) else None
        return lyrics or None
