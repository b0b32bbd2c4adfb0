import wave
import httpx
import musicbrainzngs
import pytest
from tunevault.core.errors import EnrichmentError, TagExtractionError
from tunevault.services.enrichment import MetadataEnricher
from tunevault.services.lyrics_service import LyricsService
from tunevault.services.musicbrainz import AlbumArtResult, MusicBrainzClient
from tunevault.services.tags import TagInfo, extract_tags


@pytest.fixture
def wav_file(tmp_path):
    """One second of silent 8 kHz mono audio."""
    path = tmp_path / "silence.wav"
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(8000)
        w.writeframes(b"\x00\x00" * 8000)
    return path


class TestExtractTags:
    def test_untagged_audio_reports_duration(self, wav_file):
        tags = extract_tags(str(wav_file))

        assert tags.title is None
        assert tags.artist is None
        assert tags.duration == pytest.approx(1.0, abs=0.01)

    def test_non_audio_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("definitely not audio")
        with pytest.raises(TagExtractionError):
            extract_tags(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(TagExtractionError):
            extract_tags(str(tmp_path / "missing.mp3"))

    def test_first_tag_values_are_used(self, mocker):
        audio = mocker.MagicMock()
        audio.tags = {
            "title": ["Blue Skies", "Alt Title"],
            "artist": ["Ana"],
            "album": ["  "],
            "genre": ["Pop", "Indie"],
        }
        audio.info.length = 183.4
        mocker.patch("tunevault.services.tags.MutagenFile", return_value=audio)

        tags = extract_tags("song.mp3")

        assert tags == TagInfo(title="Blue Skies", artist="Ana", album=None, genre="Pop", duration=183.4)


class TestMusicBrainzClient:
    @pytest.fixture
    def client(self, test_settings):
        return MusicBrainzClient(test_settings)

    def test_lookup_resolves_cover_and_top_tag(self, client, mocker):
        search = mocker.patch("musicbrainzngs.search_recordings", return_value={
            "recording-list": [{"id": "rec-1"}],
        })
        lookup = mocker.patch("musicbrainzngs.get_recording_by_id", return_value={
            "recording": {
                "id": "rec-1",
                "release-list": [{"id": "rel-1"}, {"id": "rel-2"}],
                "tag-list": [{"name": "pop", "count": "2"}, {"name": "indie", "count": "7"}],
            },
        })

        result = client.lookup("Blue Skies", "Ana")

        search.assert_called_once_with(recording="Blue Skies", artist="Ana", limit=1)
        lookup.assert_called_once_with("rec-1", includes=["releases", "tags"])
        assert result.album_art == "https://coverartarchive.org/release/rel-1/front-500"
        assert result.genre == "indie"

    def test_no_recording(self, client, mocker):
        mocker.patch("musicbrainzngs.search_recordings", return_value={"recording-list": []})
        lookup = mocker.patch("musicbrainzngs.get_recording_by_id")

        assert client.lookup("Nothing", "Nobody") == AlbumArtResult()
        lookup.assert_not_called()

    def test_recording_without_releases_or_tags(self, client, mocker):
        mocker.patch("musicbrainzngs.search_recordings", return_value={"recording-list": [{"id": "rec-1"}]})
        mocker.patch("musicbrainzngs.get_recording_by_id", return_value={"recording": {"id": "rec-1"}})

        assert client.lookup("Blue Skies", "Ana") == AlbumArtResult()

    def test_network_error(self, client, mocker):
        mocker.patch("musicbrainzngs.search_recordings", side_effect=musicbrainzngs.NetworkError("down"))
        with pytest.raises(EnrichmentError):
            client.lookup("Blue Skies", "Ana")


class TestLyricsService:
    def service(self, test_settings, handler):
        return LyricsService(test_settings, transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_plain_lyrics(self, test_settings):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"plainLyrics": "la la la", "syncedLyrics": "[00:01] la"})

        lyrics = await self.service(test_settings, handler).get_lyrics("Blue Skies", "Ana")

        assert lyrics == "la la la"
        assert seen["path"].endswith("/get")
        assert seen["params"] == {"track_name": "Blue Skies", "artist_name": "Ana"}

    @pytest.mark.asyncio
    async def test_not_found(self, test_settings):
        service = self.service(test_settings, lambda request: httpx.Response(404, json={"message": "not found"}))
        assert await service.get_lyrics("Blue Skies", "Ana") is None

    @pytest.mark.asyncio
    async def test_instrumental_has_no_lyrics(self, test_settings):
        service = self.service(test_settings, lambda request: httpx.Response(200, json={"plainLyrics": None}))
        assert await service.get_lyrics("Blue Skies", "Ana") is None

    @pytest.mark.asyncio
    async def test_server_error(self, test_settings):
        service = self.service(test_settings, lambda request: httpx.Response(500))
        with pytest.raises(EnrichmentError):
            await service.get_lyrics("Blue Skies", "Ana")

    @pytest.mark.asyncio
    async def test_connection_error(self, test_settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EnrichmentError):
            await self.service(test_settings, handler).get_lyrics("Blue Skies", "Ana")

    @pytest.mark.asyncio
    async def test_invalid_json(self, test_settings):
        service = self.service(test_settings, lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(EnrichmentError):
            await service.get_lyrics("Blue Skies", "Ana")


@pytest.mark.asyncio
async def test_enricher_delegates(test_settings, mocker, wav_file):
    musicbrainz = mocker.MagicMock()
    musicbrainz.lookup.return_value = AlbumArtResult(album_art="cover", genre="rock")
    lyrics = mocker.MagicMock()
    lyrics.get_lyrics = mocker.AsyncMock(return_value="words")
    enricher = MetadataEnricher(test_settings, musicbrainz=musicbrainz, lyrics=lyrics)

    assert (await enricher.lookup_album_art("T", "A")).genre == "rock"
    assert await enricher.lookup_lyrics("T", "A") == "words"
    assert (await enricher.extract_tags(str(wav_file))).duration == pytest.approx(1.0, abs=0.01)
    musicbrainz.lookup.assert_called_once_with("T", "A")
    lyrics.get_lyrics.assert_awaited_once_with("T", "A")
