import json
import logging
import re

import httpx

from studybrain.config import settings
from studybrain.schemas.youtube import PlaylistItem, PlaylistPage
from studybrain.utils.time_utils import parse_iso8601_duration

logger = logging.getLogger(__name__)

MAX_RESULTS = 50
WATCH_URL = "https://www.youtube.com/watch"
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}
_CAPTIONS = re.compile(r'"captions":\s*(\{.*?"playerCaptionsTracklistRenderer".*?\})\s*,\s*"videoDetails"', re.S)


class YouTubeAPIError(Exception):
    pass


def _api_key() -> str:
    key = (settings.youtube_api_key or "").strip()
    if not key:
        raise YouTubeAPIError("YOUTUBE_API_KEY is not configured")
    return key


async def get_video_durations(client: httpx.AsyncClient, video_ids: list[str]) -> dict[str, int]:
    """Duration in seconds per video id; missing on API failure."""
    if not video_ids:
        return {}
    response = await client.get(
        f"{settings.youtube_api_url}/videos",
        params={"part": "contentDetails", "id": ",".join(video_ids), "key": _api_key()},
    )
    if response.is_error:
        logger.error("Failed to fetch video durations: %s", response.text)
        return {}
    durations = {}
    for item in response.json().get("items") or []:
        durations[item["id"]] = parse_iso8601_duration((item.get("contentDetails") or {}).get("duration") or "PT0S")
    return durations


async def fetch_playlist_items(
    client: httpx.AsyncClient, playlist_id: str, page_token: str | None = None
) -> PlaylistPage:
    params = {"part": "snippet", "maxResults": MAX_RESULTS, "playlistId": playlist_id, "key": _api_key()}
    if page_token:
        params["pageToken"] = page_token
    response = await client.get(f"{settings.youtube_api_url}/playlistItems", params=params)
    if response.is_error:
        raise YouTubeAPIError(f"YouTube API error: {response.text}")
    data = response.json()

    items = [
        item for item in data.get("items") or []
        if ((item.get("snippet") or {}).get("resourceId") or {}).get("videoId")
    ]
    durations = await get_video_durations(client, [item["snippet"]["resourceId"]["videoId"] for item in items])

    videos = []
    for index, item in enumerate(items):
        snippet = item["snippet"]
        video_id = snippet["resourceId"]["videoId"]
        thumbnails = snippet.get("thumbnails") or {}
        position = snippet.get("position")
        videos.append(
            PlaylistItem(
                video_id=video_id,
                title=snippet.get("title") or "",
                thumbnail=(thumbnails.get("medium") or thumbnails.get("default") or {}).get("url") or "",
                duration=durations.get(video_id, 0),
                position=index if position is None else position,
                channel_name=snippet.get("videoOwnerChannelTitle") or "",
            )
        )

    first = data.get("items") or [{}]
    return PlaylistPage(
        videos=videos,
        playlist_title=(first[0].get("snippet") or {}).get("channelTitle") or "Playlist",
        total_results=(data.get("pageInfo") or {}).get("totalResults") or len(videos),
        next_page_token=data.get("nextPageToken"),
    )


async def fetch_all_playlist_items(client: httpx.AsyncClient, playlist_id: str) -> PlaylistPage:
    videos: list[PlaylistItem] = []
    page_token = None
    while True:
        page = await fetch_playlist_items(client, playlist_id, page_token)
        videos.extend(page.videos)
        page_token = page.next_page_token
        if not page_token:
            break
    logger.info("Fetched %d videos from playlist %s", len(videos), playlist_id)
    return PlaylistPage(videos=videos, playlist_title=page.playlist_title, total_results=page.total_results)


async def get_playlist(playlist_id: str, fetch_all: bool = False, page_token: str | None = None) -> PlaylistPage:
    async with httpx.AsyncClient(timeout=settings.ai_request_timeout) as client:
        if fetch_all:
            return await fetch_all_playlist_items(client, playlist_id)
        return await fetch_playlist_items(client, playlist_id, page_token)


async def fetch_transcript(video_id: str) -> list[tuple[int, str]] | None:
    """Timestamped caption lines scraped from the watch page, or None if there are none."""
    try:
        async with httpx.AsyncClient(timeout=settings.ai_request_timeout, headers=BROWSER_HEADERS) as client:
            page = await client.get(WATCH_URL, params={"v": video_id})
            match = _CAPTIONS.search(page.text)
            if not match:
                logger.info("No captions found for video %s", video_id)
                return None
            tracks = (json.loads(match.group(1)).get("playerCaptionsTracklistRenderer") or {}).get("captionTracks")
            if not tracks:
                return None
            track = next((t for t in tracks if t.get("languageCode") == "en"), tracks[0])
            captions = (await client.get(f"{track['baseUrl']}&fmt=json3")).json()
    except (httpx.HTTPError, ValueError, KeyError) as e:
        logger.warning("Transcript fetch for %s failed: %s", video_id, e)
        return None

    lines = []
    for event in captions.get("events") or []:
        text = "".join(seg.get("utf8", "") for seg in event.get("segs") or []).strip()
        if text:
            lines.append((int(event.get("tStartMs", 0)) // 1000, text))
    return lines or None
