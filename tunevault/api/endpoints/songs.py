import logging
from typing import List, Optional, Union
from fastapi import APIRouter, Depends, File, Query, UploadFile
from ..deps import get_catalog, get_pipeline
from ...core.errors import NoFileProvided
from ...core.store import CatalogStore
from ...models.models import ErrorResponse, Song
from ...services.ingestion import IngestionPipeline

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post(
    "/upload",
    response_model=Song,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_song(
    song: Union[UploadFile, str, None] = File(None, description="Audio file to add to the library"),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Upload an audio file, store it remotely, enrich it and add it to the catalog"""
    # A plain text field named "song" carries no file
    if not isinstance(song, UploadFile):
        raise NoFileProvided()

    try:
        return await pipeline.ingest(song.filename, song.file, song.content_type)
    finally:
        await song.close()

@router.get("/songs", response_model=List[Song])
async def list_songs(catalog: CatalogStore = Depends(get_catalog)):
    """List every song in the catalog"""
    return await catalog.list_songs()

@router.get("/search", response_model=List[Song])
async def search_songs(
    q: Optional[str] = Query(None, description="Case-insensitive substring of title or artist"),
    catalog: CatalogStore = Depends(get_catalog),
):
    return await catalog.search_songs(q)
