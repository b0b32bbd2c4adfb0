import os
import pytest
from httpx import ASGITransport, AsyncClient
from tunevault.api import deps
from tunevault.core.config import Settings
from tunevault.core.errors import StorageError
from tunevault.core.store import CatalogStore
from tunevault.main import app
from tunevault.services.ingestion import IngestionPipeline
from tunevault.services.musicbrainz import AlbumArtResult
from tunevault.services.storage import RemoteStorageClient, StoredObject
from tunevault.services.streaming import StreamingProxy
from tunevault.services.tags import TagInfo


class FakeStorageClient(RemoteStorageClient):
    """In-memory remote storage with switchable failures."""

    def __init__(self):
        self.objects = {}
        self.content_types = {}
        self.public = set()
        self.fail_upload = False
        self.fail_public = False
        self.fail_stream = False
        self.chunk_size = 4

    def upload_file(self, local_path, key, content_type=None):
        if self.fail_upload:
            raise StorageError("simulated upload failure")
        with open(local_path, "rb") as f:
            self.objects[key] = f.read()
        self.content_types[key] = content_type
        return key

    def make_public(self, handle):
        if self.fail_public:
            raise StorageError("simulated permission failure")
        self.public.add(handle)

    def open_stream(self, handle, byte_range=None):
        if self.fail_stream or handle not in self.objects:
            raise StorageError(f"cannot open {handle}")
        data = self.objects[handle]
        chunks = [data[i:i + self.chunk_size] for i in range(0, len(data), self.chunk_size)]
        return StoredObject(
            body=iter(chunks),
            content_type=self.content_types.get(handle),
            content_length=len(data),
        )

    def delete(self, handle):
        self.objects.pop(handle, None)
        self.public.discard(handle)


class FakeEnricher:
    """Records calls and returns canned tag / album art / lyrics results."""

    def __init__(self):
        self.tags = TagInfo()
        self.tag_error = None
        self.album_art = AlbumArtResult()
        self.album_art_error = None
        self.lyrics = None
        self.lyrics_error = None
        self.calls = []

    async def extract_tags(self, file_path):
        self.calls.append(("extract_tags", file_path))
        if self.tag_error:
            raise self.tag_error
        return self.tags

    async def lookup_album_art(self, title, artist):
        self.calls.append(("album_art", title, artist))
        if self.album_art_error:
            raise self.album_art_error
        return self.album_art

    async def lookup_lyrics(self, title, artist):
        self.calls.append(("lyrics", title, artist))
        if self.lyrics_error:
            raise self.lyrics_error
        return self.lyrics


@pytest.fixture
def test_settings(tmp_path):
    """Settings rooted in a per-test temporary directory."""
    return Settings(
        DATA_DIR=tmp_path / "data",
        LOCAL_STORAGE_PATH=tmp_path / "objects",
        STORAGE_PROVIDER="local",
        ENRICHMENT_ENABLED=True,
        UPLOAD_CHUNK_SIZE=8,
    )


@pytest.fixture
def catalog(test_settings):
    return CatalogStore(test_settings.SONGS_FILE, test_settings.PLAYLISTS_FILE)


@pytest.fixture
def fake_storage():
    return FakeStorageClient()


@pytest.fixture
def fake_enricher():
    return FakeEnricher()


@pytest.fixture
def pipeline(test_settings, catalog, fake_enricher, fake_storage):
    return IngestionPipeline(test_settings, catalog, fake_enricher, lambda: fake_storage)


@pytest.fixture
def proxy(test_settings, catalog, fake_storage):
    return StreamingProxy(test_settings, catalog, lambda: fake_storage)


@pytest.fixture
def staged_files(test_settings):
    """Return a callable listing what is currently in the staging directory."""
    def _list():
        if not os.path.isdir(test_settings.UPLOAD_DIR):
            return []
        return os.listdir(test_settings.UPLOAD_DIR)
    return _list


@pytest.fixture
async def test_client(test_settings, catalog, fake_enricher, fake_storage):
    app.dependency_overrides[deps.get_settings] = lambda: test_settings
    app.dependency_overrides[deps.get_catalog] = lambda: catalog
    app.dependency_overrides[deps.get_enricher] = lambda: fake_enricher
    app.dependency_overrides[deps.get_storage_factory] = lambda: (lambda: fake_storage)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
