import logging

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from studybrain.dependencies import verify_api_token
from studybrain.services import youtube_service
from studybrain.services.youtube_service import YouTubeAPIError

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_api_token)])


@router.get("/youtube-playlist")
async def youtube_playlist(
    playlistId: str | None = None,
    fetchAll: bool = False,
    pageToken: str | None = None,
):
    if not playlistId:
        return JSONResponse(status_code=400, content={"error": "playlistId is required"})
    try:
        page = await youtube_service.get_playlist(playlistId, fetch_all=fetchAll, page_token=pageToken)
    except (YouTubeAPIError, httpx.HTTPError) as e:
        logger.error("Error fetching playlist %s: %s", playlistId, e)
        return JSONResponse(status_code=500, content={"error": str(e) or "Failed to fetch playlist"})
    return page.model_dump(by_alias=True, exclude_none=True)
