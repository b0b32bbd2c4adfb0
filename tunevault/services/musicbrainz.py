"""
Album art and genre lookup against MusicBrainz and the Cover Art Archive.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import musicbrainzngs

from ..core.config import Settings
from ..core.errors import EnrichmentError

logger = logging.getLogger(__name__)


@dataclass
class AlbumArtResult:
    album_art: Optional[str] = None
    genre: Optional[str] = None


class MusicBrainzClient:
    def __init__(self, config: Settings):
        self.cover_art_template = config.COVER_ART_URL_TEMPLATE
        musicbrainzngs.set_useragent(
            config.MUSICBRAINZ_APP_NAME,
            config.MUSICBRAINZ_APP_VERSION,
            config.MUSICBRAINZ_CONTACT,
        )

    def cover_art_url(self, release_id: str) -> str:
        return self.cover_art_template.format(release_id=release_id)

    @staticmethod
    def _top_tag(recording: dict) -> Optional[str]:
        tags = recording.get("tag-list") or []
        if not tags:
            return None

        def count(tag):
            try:
                return int(tag.get("count", 0))
            except (TypeError, ValueError):
                return 0

        best = max(tags, key=count)
        return best.get("name") or None

    def lookup(self, title: str, artist: str) -> AlbumArtResult:
        """Find the best recording for title+artist and resolve its album art and genre.

        Blocking; callers on the event loop run it in a worker thread.
        """
        try:
            result = musicbrainzngs.search_recordings(recording=title, artist=artist, limit=1)
            recordings = result.get("recording-list") or []
            if not recordings:
                logger.info(f"No MusicBrainz recording for {artist} - {title}")
                return AlbumArtResult()

            recording_id = recordings[0]["id"]
            lookup = musicbrainzngs.get_recording_by_id(recording_id, includes=["releases", "tags"])
        except musicbrainzngs.MusicBrainzError as e:
            raise EnrichmentError(f"MusicBrainz lookup failed: {e}") from e

        recording = lookup.get("recording", {})
        releases = recording.get("release-list") or []

        album_art = self.cover_art_url(releases[0]["id"]) if releases else None
        return AlbumArtResult(album_art=album_art, genre=self._top_tag(recording))
