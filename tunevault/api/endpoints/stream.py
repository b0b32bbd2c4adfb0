import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header
from fastapi.responses import StreamingResponse
from ..deps import get_streaming_proxy
from ...models.models import ErrorResponse
from ...services.streaming import StreamingProxy

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get(
    "/stream/{song_id}",
    response_class=StreamingResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def stream_song(
    song_id: str,
    range_header: Optional[str] = Header(None, alias="Range"),
    proxy: StreamingProxy = Depends(get_streaming_proxy),
):
    """Relay the stored audio of a song, honouring a single byte range"""
    stream = await proxy.open(song_id, range_header)
    return StreamingResponse(
        stream.body,
        status_code=stream.status_code,
        media_type=stream.media_type,
        headers=stream.headers,
    )
