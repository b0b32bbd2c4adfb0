from typing import List, Optional
from fastapi import APIRouter, Body, Depends
from ..deps import get_catalog
from ...core.errors import InvalidPlaylistName
from ...core.store import CatalogStore
from ...models.models import ErrorResponse, Playlist, PlaylistAddSong, PlaylistCreate

router = APIRouter()

@router.get("", response_model=List[Playlist])
async def list_playlists(catalog: CatalogStore = Depends(get_catalog)):
    return await catalog.list_playlists()

@router.post("", response_model=Playlist, responses={400: {"model": ErrorResponse}})
async def create_playlist(
    payload: Optional[PlaylistCreate] = Body(None),
    catalog: CatalogStore = Depends(get_catalog),
):
    name = payload.name if payload else None
    if not name or not name.strip():
        raise InvalidPlaylistName()
    return await catalog.create_playlist(name)

@router.get("/{playlist_id}", response_model=Playlist, responses={404: {"model": ErrorResponse}})
async def get_playlist(playlist_id: str, catalog: CatalogStore = Depends(get_catalog)):
    return await catalog.get_playlist(playlist_id)

@router.put("/{playlist_id}/add", response_model=Playlist, responses={404: {"model": ErrorResponse}})
async def add_song_to_playlist(
    playlist_id: str,
    payload: Optional[PlaylistAddSong] = Body(None),
    catalog: CatalogStore = Depends(get_catalog),
):
    """Append a song to a playlist; a song already present is not added twice"""
    song_id = payload.song_id if payload and payload.song_id else ""
    return await catalog.add_song_to_playlist(playlist_id, song_id)
