"""Tests for the playlist client and importing playlist videos into the store."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from studybrain.client.errors import PlaylistFetchError
from studybrain.client.playlist import PlaylistClient, import_playlist
from studybrain.schemas.video import SourceCreate, VideoCreate
from studybrain.schemas.youtube import PlaylistItem, PlaylistPage

PAGE_JSON = {
    "videos": [
        {"videoId": "v2", "title": "Second", "thumbnail": "", "duration": 120, "position": 1, "channelName": "Prof"},
        {"videoId": "v1", "title": "First", "thumbnail": "http://img/1.jpg", "duration": 60, "position": 0, "channelName": "Prof"},
    ],
    "playlistTitle": "Prof",
    "totalResults": 2,
}


def make_client(handler) -> PlaylistClient:
    return PlaylistClient(
        base_url="http://studybrain.test",
        api_key="secret",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestFetchPlaylist:
    def test_parses_page(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=PAGE_JSON)

        page = asyncio.run(make_client(handler).fetch_playlist("PLxyz"))
        assert [v.video_id for v in page.videos] == ["v2", "v1"]
        assert page.total_results == 2
        assert seen[0].url.params["playlistId"] == "PLxyz"
        assert seen[0].url.params["fetchAll"] == "true"
        assert seen[0].headers["authorization"] == "Bearer secret"

    def test_error_body(self):
        client = make_client(lambda request: httpx.Response(500, json={"error": "YOUTUBE_API_KEY is not configured"}))
        with pytest.raises(PlaylistFetchError, match="YOUTUBE_API_KEY"):
            asyncio.run(client.fetch_playlist("PLxyz"))

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(PlaylistFetchError):
            asyncio.run(make_client(handler).fetch_playlist("PLxyz"))


class TestImportPlaylist:
    def test_adds_videos_in_playlist_order(self, store, gateway):
        async def scenario():
            source_id = await store.add_source(SourceCreate(type="playlist", youtube_id="PLxyz", title="Prof"))
            ids = await import_playlist(store, source_id, PlaylistPage.model_validate(PAGE_JSON))
            return source_id, ids

        source_id, ids = asyncio.run(scenario())
        videos = [store.state.videos[i] for i in ids]
        assert [v.youtube_id for v in videos] == ["v1", "v2"]
        assert [v.playlist_position for v in videos] == [0, 1]
        assert all(v.source_id == source_id for v in videos)
        assert videos[0].thumbnail_url == "http://img/1.jpg"
        assert videos[1].thumbnail_url is None

    def test_existing_videos_are_reused(self, store, gateway):
        async def scenario():
            existing = await store.add_video(VideoCreate(youtube_id="v1", title="First"))
            page = PlaylistPage(videos=[PlaylistItem(video_id="v1", title="First", position=0)])
            ids = await import_playlist(store, "source-1", page)
            return existing, ids

        existing, ids = asyncio.run(scenario())
        assert ids == [existing]
        assert gateway.count("insert", "videos") == 1
