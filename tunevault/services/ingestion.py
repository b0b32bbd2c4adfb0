"""
Ingestion pipeline: one uploaded audio file in, one catalog record out.

Stages run strictly in order:

1. stage the upload under a unique token in the staging directory
2. acquire a remote storage client
3. read embedded tags (best-effort)
4. upload the staged file to remote storage and make it publicly readable
5. delete the staged file (always, once stage 1 succeeded)
6. look up album art / genre, then lyrics (best-effort, conditional)
7. append the new Song to the catalog

Each stage returns a ``StageOutcome``. Best-effort stages never produce a
fatal outcome; they degrade to a default value instead. ``unwrap`` raises
the error of a fatal outcome, which aborts the pipeline.
"""

import asyncio
import logging
import mimetypes
import os
import shutil
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Generic, Optional, TypeVar

from ..core.config import Settings
from ..core.errors import (
    NoFileProvided,
    StorageUnavailable,
    StorageUploadFailed,
    TuneVaultError,
    UploadTooLarge,
)
from ..core.store import CatalogStore
from ..models.models import UNKNOWN, Song
from .enrichment import MetadataEnricher
from .musicbrainz import AlbumArtResult
from .storage import RemoteStorageClient, get_storage_client
from .tags import TagInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StageStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass
class StageOutcome(Generic[T]):
    stage: str
    status: StageStatus
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, stage: str, value: T) -> "StageOutcome[T]":
        return cls(stage, StageStatus.OK, value)

    @classmethod
    def degraded(cls, stage: str, default: T, error: BaseException) -> "StageOutcome[T]":
        return cls(stage, StageStatus.DEGRADED, default, error)

    @classmethod
    def fatal(cls, stage: str, error: BaseException) -> "StageOutcome[T]":
        return cls(stage, StageStatus.FATAL, None, error)

    def unwrap(self) -> T:
        if self.status is StageStatus.FATAL:
            raise self.error
        return self.value


@dataclass
class StagedUpload:
    token: str
    path: Path
    original_filename: str
    content_type: str

    @property
    def extension(self) -> str:
        return self.path.suffix


@dataclass
class Enrichment:
    album_art: Optional[str] = None
    genre: Optional[str] = None
    lyrics: Optional[str] = None
    outcomes: list = field(default_factory=list)


def fallback_title(filename: str) -> str:
    """Original filename with its extension stripped."""
    return os.path.splitext(os.path.basename(filename))[0]


def detect_content_type(filename: str, declared: Optional[str]) -> str:
    if declared and declared != DEFAULT_CONTENT_TYPE:
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or declared or DEFAULT_CONTENT_TYPE


class IngestionPipeline:
    def __init__(self, config: Settings, catalog: CatalogStore, enricher: MetadataEnricher,
                 storage_factory: Optional[Callable[[], RemoteStorageClient]] = None):
        self.upload_dir = Path(config.UPLOAD_DIR)
        self.max_upload_size = config.MAX_UPLOAD_SIZE
        self.chunk_size = config.UPLOAD_CHUNK_SIZE
        self.key_prefix = config.STORAGE_KEY_PREFIX
        self.enrichment_enabled = config.ENRICHMENT_ENABLED
        self.catalog = catalog
        self.enricher = enricher
        self.storage_factory = storage_factory or (lambda: get_storage_client(config))

    async def ingest(self, filename: Optional[str], fileobj: Optional[BinaryIO],
                     content_type: Optional[str] = None) -> Song:
        """Turn one uploaded file into one persisted Song record."""
        if fileobj is None or not filename:
            raise NoFileProvided()

        staged = (await self.stage_upload(filename, fileobj, content_type)).unwrap()
        try:
            storage = (await self.acquire_storage()).unwrap()
            metadata = await self.extract_metadata(staged)
            tags = metadata.unwrap()
            storage_key = (await self.upload(storage, staged)).unwrap()
        finally:
            await self.discard(staged)

        title = tags.title or fallback_title(filename)
        artist = tags.artist or UNKNOWN
        enrichment = await self.enrich(title, artist)

        song = Song(
            title=title,
            artist=artist,
            album=tags.album or UNKNOWN,
            genre=enrichment.genre or tags.genre or UNKNOWN,
            duration=tags.duration or 0,
            album_art=enrichment.album_art,
            lyrics=enrichment.lyrics,
            storage_key=storage_key,
        )
        await self.catalog.add_song(song)

        degraded = [o.stage for o in [metadata, *enrichment.outcomes] if o.status is StageStatus.DEGRADED]
        if degraded:
            logger.warning(f"Song {song.id} saved with degraded stages: {', '.join(degraded)}")
        return song

    # Stage 1

    def _copy_to_staging(self, fileobj: BinaryIO, path: Path) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        written = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = fileobj.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_upload_size:
                        raise UploadTooLarge()
                    out.write(chunk)
        except BaseException:
            if path.exists():
                os.remove(path)
            raise

    async def stage_upload(self, filename: str, fileobj: BinaryIO,
                           content_type: Optional[str]) -> StageOutcome[StagedUpload]:
        token = uuid.uuid4().hex
        extension = os.path.splitext(os.path.basename(filename))[1].lower()
        path = self.upload_dir / f"{token}{extension}"
        try:
            await asyncio.to_thread(self._copy_to_staging, fileobj, path)
        except UploadTooLarge as e:
            logger.warning(f"Rejected upload {filename}: larger than {self.max_upload_size} bytes")
            return StageOutcome.fatal("stage", e)
        except OSError as e:
            logger.error(f"Failed to stage upload {filename}: {str(e)}")
            return StageOutcome.fatal("stage", TuneVaultError("Failed to store uploaded file"))

        return StageOutcome.ok("stage", StagedUpload(
            token=token,
            path=path,
            original_filename=filename,
            content_type=detect_content_type(filename, content_type),
        ))

    # Stage 2

    async def acquire_storage(self) -> StageOutcome[RemoteStorageClient]:
        try:
            storage = await asyncio.to_thread(self.storage_factory)
        except StorageUnavailable as e:
            logger.error(f"Failed to initialize remote storage: {e.message}")
            return StageOutcome.fatal("acquire_storage", e)
        except Exception as e:
            logger.error(f"Failed to initialize remote storage: {str(e)}")
            return StageOutcome.fatal("acquire_storage", StorageUnavailable())
        return StageOutcome.ok("acquire_storage", storage)

    # Stage 3

    async def extract_metadata(self, staged: StagedUpload) -> StageOutcome[TagInfo]:
        try:
            tags = await self.enricher.extract_tags(str(staged.path))
        except Exception as e:
            logger.warning(f"Metadata extraction failed for {staged.original_filename}: {str(e)}")
            return StageOutcome.degraded("extract_metadata", TagInfo(), e)
        return StageOutcome.ok("extract_metadata", tags)

    # Stage 4

    def _upload_sync(self, storage: RemoteStorageClient, staged: StagedUpload) -> str:
        key = f"{self.key_prefix}{staged.token}{staged.extension}"
        handle = storage.upload_file(str(staged.path), key, staged.content_type)
        try:
            storage.make_public(handle)
        except Exception:
            # Do not leave an unreachable object behind
            try:
                storage.delete(handle)
            except Exception as e:
                logger.error(f"Failed to remove remote object {handle}: {str(e)}")
            raise
        return handle

    async def upload(self, storage: RemoteStorageClient, staged: StagedUpload) -> StageOutcome[str]:
        try:
            handle = await asyncio.to_thread(self._upload_sync, storage, staged)
        except Exception as e:
            logger.error(f"Remote upload failed for {staged.original_filename}: {str(e)}")
            return StageOutcome.fatal("upload", StorageUploadFailed())
        logger.info(f"Uploaded {staged.original_filename} to remote storage as {handle}")
        return StageOutcome.ok("upload", handle)

    # Stage 5

    async def discard(self, staged: StagedUpload) -> None:
        try:
            await asyncio.to_thread(os.remove, staged.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to delete temp file {staged.path}: {str(e)}")

    # Stage 6

    async def _lookup_album_art(self, title: str, artist: str) -> StageOutcome[AlbumArtResult]:
        try:
            result = await self.enricher.lookup_album_art(title, artist)
        except Exception as e:
            logger.warning(f"Album art lookup failed for {artist} - {title}: {str(e)}")
            return StageOutcome.degraded("album_art", AlbumArtResult(), e)
        return StageOutcome.ok("album_art", result or AlbumArtResult())

    async def _lookup_lyrics(self, title: str, artist: str) -> StageOutcome[Optional[str]]:
        try:
            lyrics = await self.enricher.lookup_lyrics(title, artist)
        except Exception as e:
            logger.warning(f"Lyrics lookup failed for {artist} - {title}: {str(e)}")
            return StageOutcome.degraded("lyrics", None, e)
        return StageOutcome.ok("lyrics", lyrics)

    async def enrich(self, title: str, artist: str) -> Enrichment:
        if not self.enrichment_enabled or not title or artist == UNKNOWN:
            return Enrichment()

        art = await self._lookup_album_art(title, artist)
        lyrics = await self._lookup_lyrics(title, artist)
        return Enrichment(
            album_art=art.value.album_art,
            genre=art.value.genre,
            lyrics=lyrics.value,
            outcomes=[art, lyrics],
        )
