"""
File-backed catalog persistence.

Each collection (songs, playlists) lives in its own JSON array file and is
always rewritten wholesale. Reads recover from a missing, empty or corrupt
file by resetting it to an empty array. Mutations go through
``JsonCollection.mutate`` which serializes read-modify-write cycles per
collection, so concurrent requests cannot overwrite each other's changes.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .config import settings
from .errors import PlaylistNotFound, SongNotFound
from ..models.models import Playlist, Song

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)
ResultT = TypeVar("ResultT")


class JsonCollection:
    """One JSON-array file plus the lock that serializes its mutations."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _reset(self) -> List[Dict[str, Any]]:
        self._write_sync([])
        return []

    def _load_sync(self) -> Optional[List[Dict[str, Any]]]:
        """Parse the backing file; None when it is missing or corrupt and needs a reset."""
        if not self.path.exists():
            return None

        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unreadable catalog file {self.path}, resetting: {str(e)}")
            return None

        if not content:
            return None

        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON in {self.path}, resetting...")
            return None

        if not isinstance(data, list):
            logger.warning(f"Catalog file {self.path} does not hold an array, resetting...")
            return None

        return data

    def _read_sync(self) -> List[Dict[str, Any]]:
        data = self._load_sync()
        return self._reset() if data is None else data

    def _write_sync(self, items: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file and swap it in so readers never see a partial array
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    async def read(self) -> List[Dict[str, Any]]:
        data = await asyncio.to_thread(self._load_sync)
        if data is not None:
            return data
        # Resetting rewrites the file, so it must not interleave with a mutation
        async with self._lock:
            return await asyncio.to_thread(self._read_sync)

    async def write(self, items: List[Dict[str, Any]]) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write_sync, items)

    async def mutate(self, fn: Callable[[List[Dict[str, Any]]], ResultT]) -> ResultT:
        """Run ``fn`` on the current items and persist them, holding the collection lock.

        ``fn`` modifies the list in place and returns whatever the caller needs.
        If it raises, nothing is written.
        """
        async with self._lock:
            items = await asyncio.to_thread(self._read_sync)
            result = fn(items)
            await asyncio.to_thread(self._write_sync, items)
            return result


def _parse_records(items: List[Dict[str, Any]], model: Type[RecordT]) -> List[RecordT]:
    records = []
    for item in items:
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed {model.__name__} record: {e.error_count()} validation error(s)")
    return records


def _dump(record: BaseModel) -> Dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


class CatalogStore:
    def __init__(self, songs_file: str | os.PathLike, playlists_file: str | os.PathLike):
        self.songs = JsonCollection(songs_file)
        self.playlists = JsonCollection(playlists_file)

    # Songs

    async def list_songs(self) -> List[Song]:
        return _parse_records(await self.songs.read(), Song)

    async def get_song(self, song_id: str) -> Song:
        for song in await self.list_songs():
            if song.id == song_id:
                return song
        raise SongNotFound()

    async def add_song(self, song: Song) -> Song:
        def append(items):
            items.append(_dump(song))
            return song

        await self.songs.mutate(append)
        logger.info(f"Saved song {song.id}: {song.artist} - {song.title}")
        return song

    async def search_songs(self, query: Optional[str]) -> List[Song]:
        return [song for song in await self.list_songs() if song.matches(query or "")]

    # Playlists

    async def list_playlists(self) -> List[Playlist]:
        return _parse_records(await self.playlists.read(), Playlist)

    async def get_playlist(self, playlist_id: str) -> Playlist:
        for playlist in await self.list_playlists():
            if playlist.id == playlist_id:
                return playlist
        raise PlaylistNotFound()

    async def create_playlist(self, name: str) -> Playlist:
        playlist = Playlist(name=name)

        def append(items):
            items.append(_dump(playlist))
            return playlist

        return await self.playlists.mutate(append)

    async def add_song_to_playlist(self, playlist_id: str, song_id: str) -> Playlist:
        """Append a song to a playlist.

        A song already in the playlist (same id) is not added a second time.
        Raises ``PlaylistNotFound`` or ``SongNotFound``. A playlist record that
        fails validation is treated as missing, as on read.
        """
        await self.get_playlist(playlist_id)
        song = await self.get_song(song_id)

        def append(items):
            for index, item in enumerate(items):
                if not isinstance(item, dict) or item.get("id") != playlist_id:
                    continue
                try:
                    playlist = Playlist.model_validate(item)
                except ValidationError:
                    continue
                if not playlist.contains(song.id):
                    playlist.songs.append(song)
                    items[index] = _dump(playlist)
                return playlist
            raise PlaylistNotFound()

        return await self.playlists.mutate(append)


# Create global catalog store instance
catalog_store = CatalogStore(settings.SONGS_FILE, settings.PLAYLISTS_FILE)
