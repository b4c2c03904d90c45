import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, TYPE_CHECKING

import httpx
from pydantic import ValidationError

from studybrain.client.errors import PlaylistFetchError
from studybrain.config import settings
from studybrain.schemas.video import VideoCreate
from studybrain.schemas.youtube import PlaylistPage

if TYPE_CHECKING:
    from studybrain.client.store import StudyStore

logger = logging.getLogger(__name__)


class PlaylistClient:
    """Client for ``GET /youtube-playlist``."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = (base_url or settings.studybrain_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.api_token
        self.timeout = timeout if timeout is not None else settings.ai_request_timeout
        self._http_client = http_client

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
            yield client

    async def fetch_playlist(
        self, playlist_id: str, fetch_all: bool = True, page_token: str | None = None
    ) -> PlaylistPage:
        params = {"playlistId": playlist_id, "fetchAll": "true" if fetch_all else "false"}
        if page_token:
            params["pageToken"] = page_token
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        async with self._client() as client:
            try:
                response = await client.get(
                    f"{self.base_url}/youtube-playlist", params=params, headers=headers, timeout=self.timeout
                )
            except httpx.HTTPError as e:
                logger.error("Playlist %s request failed: %s", playlist_id, e)
                raise PlaylistFetchError("Failed to fetch playlist videos") from e

        try:
            data = response.json()
        except ValueError:
            data = None
        if not response.is_success or not isinstance(data, dict) or data.get("error"):
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning("Playlist %s fetch failed (%s): %s", playlist_id, response.status_code, message)
            raise PlaylistFetchError(message or "Failed to fetch playlist videos")
        try:
            return PlaylistPage.model_validate(data)
        except ValidationError as e:
            raise PlaylistFetchError("Malformed playlist response") from e


async def import_playlist(store: "StudyStore", source_id: str, page: PlaylistPage) -> list[str]:
    """Add every playlist video to the store; returns the video ids in playlist order.

    Videos already known by youtube id are reused, not inserted again.
    """
    video_ids = []
    for item in sorted(page.videos, key=lambda v: v.position):
        video_id = await store.add_video(
            VideoCreate(
                youtube_id=item.video_id,
                title=item.title,
                thumbnail_url=item.thumbnail or None,
                duration=item.duration,
                channel_name=item.channel_name or None,
                source_id=source_id,
                playlist_position=item.position,
            )
        )
        video_ids.append(video_id)
    logger.info("Imported %d videos from playlist source %s", len(video_ids), source_id)
    return video_ids
