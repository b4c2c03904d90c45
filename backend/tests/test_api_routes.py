"""API tests for the chat and playlist routes, with OpenAI and YouTube calls patched out."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from studybrain.client.chat import ChatClient
from studybrain.config import settings
from studybrain.main import app
from studybrain.schemas.chat import ChatMessage
from studybrain.schemas.youtube import PlaylistItem, PlaylistPage
from studybrain.services import openai_service, youtube_service
from studybrain.services.openai_service import AIServiceError

FRAMES = [
    'data: {"choices":[{"delta":{"content":"Hel"}}]}\n\n',
    'data: {"choices":[{"delta":{"content":"lo"}}]}\n\n',
    "data: [DONE]\n\n",
]


class FakeAI:
    """Records prompts and answers like the openai_service functions."""

    def __init__(self):
        self.streams: list[list[dict]] = []
        self.completions: list[tuple[str, str]] = []
        self.tool_calls: list[dict] = []
        self.error: AIServiceError | None = None
        self.text = "translated"
        self.tool_result = {
            "questions": [
                {"id": 1, "question": "2 + 2?", "type": "mcq", "options": ["3", "4"], "correctAnswer": "4"}
            ]
        }

    async def open_chat_stream(self, messages):
        if self.error:
            raise self.error
        self.streams.append(messages)

        async def frames():
            for frame in FRAMES:
                yield frame

        return frames()

    async def complete(self, system_prompt, user_prompt):
        if self.error:
            raise self.error
        self.completions.append((system_prompt, user_prompt))
        return self.text

    async def complete_with_tool(self, system_prompt, user_prompt, tool):
        if self.error:
            raise self.error
        self.tool_calls.append(tool)
        return self.tool_result


@pytest.fixture
def ai(monkeypatch):
    fake = FakeAI()
    monkeypatch.setattr(openai_service, "open_chat_stream", fake.open_chat_stream)
    monkeypatch.setattr(openai_service, "complete", fake.complete)
    monkeypatch.setattr(openai_service, "complete_with_tool", fake.complete_with_tool)
    return fake


@pytest.fixture
def api(monkeypatch):
    monkeypatch.setattr(settings, "api_token", "")
    return TestClient(app)


class TestHealth:
    def test_health(self, api):
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert "x-process-time" in response.headers


class TestPdfChat:
    def test_chat_streams_sse(self, api, ai):
        response = api.post(
            "/pdf-chat",
            json={"messages": [{"role": "user", "content": "Explain"}], "pageText": "Ohm's law"},
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.text == "".join(FRAMES)
        system = ai.streams[0][0]
        assert system["role"] == "system" and "Ohm's law" in system["content"]
        assert ai.streams[0][1] == {"role": "user", "content": "Explain"}

    def test_translate(self, api, ai):
        response = api.post("/pdf-chat", json={"action": "translate", "pageText": "hello", "language": "hindi"})
        assert response.status_code == 200
        assert response.json() == {"translation": "translated"}
        assert "hello" in ai.completions[0][0]

    def test_quiz_uses_camel_case(self, api, ai):
        response = api.post(
            "/pdf-chat",
            json={"action": "quiz", "pageText": "arithmetic", "numQuestions": 1, "questionTypes": ["mcq"]},
        )
        assert response.status_code == 200
        question = response.json()["questions"][0]
        assert question["correctAnswer"] == "4"
        assert ai.tool_calls[0]["function"]["name"] == "generate_quiz"

    def test_check_answers(self, api, ai):
        ai.text = "Score: 1/1"
        response = api.post(
            "/pdf-chat",
            json={
                "action": "check-answers",
                "pageText": "arithmetic",
                "answers": [{"questionId": 1, "question": "2 + 2?", "correctAnswer": "4", "userAnswer": "4"}],
            },
        )
        assert response.json() == {"feedback": "Score: 1/1"}
        assert "2 + 2?" in ai.completions[0][0]

    @pytest.mark.parametrize("status", [429, 402, 500])
    def test_ai_errors_become_json(self, api, ai, status):
        ai.error = AIServiceError("upstream said no", status)
        response = api.post("/pdf-chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert response.status_code == status
        assert response.json() == {"error": "upstream said no"}

    def test_unknown_action_rejected(self, api, ai):
        response = api.post("/pdf-chat", json={"action": "summarize"})
        assert response.status_code == 422


class TestVideoChat:
    def test_prompt_uses_transcript_window(self, api, ai, monkeypatch):
        async def fake_transcript(video_id):
            assert video_id == "abc123"
            return [(10, "intro"), (70, "inside range"), (400, "much later")]

        monkeypatch.setattr(youtube_service, "fetch_transcript", fake_transcript)
        response = api.post(
            "/video-chat",
            json={
                "messages": [{"role": "user", "content": "What is this?"}],
                "videoId": "abc123",
                "videoTitle": "Lecture 1",
                "startTime": 60,
                "endTime": 120,
            },
        )
        assert response.status_code == 200
        system = ai.streams[0][0]["content"]
        assert "Lecture 1" in system
        assert "[1:10] inside range" in system
        assert "much later" not in system

    def test_missing_transcript(self, api, ai, monkeypatch):
        async def no_transcript(video_id):
            return None

        monkeypatch.setattr(youtube_service, "fetch_transcript", no_transcript)
        response = api.post("/video-chat", json={"videoId": "abc123", "currentTime": 30})
        assert response.status_code == 200
        assert "Not available" in ai.streams[0][0]["content"]


class TestYouTubePlaylist:
    def test_missing_playlist_id(self, api):
        response = api.get("/youtube-playlist")
        assert response.status_code == 400
        assert response.json() == {"error": "playlistId is required"}

    def test_returns_camel_case_page(self, api, monkeypatch):
        calls = []

        async def fake_get_playlist(playlist_id, fetch_all=False, page_token=None):
            calls.append((playlist_id, fetch_all, page_token))
            return PlaylistPage(
                videos=[PlaylistItem(video_id="v1", title="One", duration=61, position=0)],
                playlist_title="Course",
                total_results=1,
            )

        monkeypatch.setattr(youtube_service, "get_playlist", fake_get_playlist)
        response = api.get("/youtube-playlist", params={"playlistId": "PL1", "fetchAll": "true"})
        assert response.status_code == 200
        data = response.json()
        assert data["videos"][0]["videoId"] == "v1"
        assert data["playlistTitle"] == "Course"
        assert "nextPageToken" not in data
        assert calls == [("PL1", True, None)]

    def test_service_error(self, api, monkeypatch):
        async def failing(playlist_id, fetch_all=False, page_token=None):
            raise youtube_service.YouTubeAPIError("YOUTUBE_API_KEY is not configured")

        monkeypatch.setattr(youtube_service, "get_playlist", failing)
        response = api.get("/youtube-playlist", params={"playlistId": "PL1"})
        assert response.status_code == 500
        assert response.json() == {"error": "YOUTUBE_API_KEY is not configured"}


class TestBearerToken:
    def test_rejects_missing_or_wrong_token(self, api, ai, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "s3cret")
        body = {"action": "translate", "pageText": "x", "language": "hindi"}
        assert api.post("/pdf-chat", json=body).status_code == 401
        wrong = api.post("/pdf-chat", json=body, headers={"Authorization": "Bearer nope"})
        assert wrong.status_code == 401
        ok = api.post("/pdf-chat", json=body, headers={"Authorization": "Bearer s3cret"})
        assert ok.status_code == 200

    def test_health_is_open(self, api, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "s3cret")
        assert api.get("/health").status_code == 200


class TestClientAgainstApp:
    def test_chat_client_streams_from_app(self, ai, monkeypatch):
        monkeypatch.setattr(settings, "api_token", "")
        http_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
        client = ChatClient(base_url="http://studybrain.test", api_key="", http_client=http_client)

        messages = asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")], page_text="text"))

        assert messages[-1].role == "assistant"
        assert messages[-1].content == "Hello"


class TestLoggingMiddleware:
    def test_level_for_status(self):
        import logging

        from studybrain.middleware import level_for_status

        assert level_for_status(200) == logging.INFO
        assert level_for_status(404) == logging.WARNING
        assert level_for_status(502) == logging.ERROR

    def test_stream_response_gets_timing_header(self, api, ai):
        response = api.post("/pdf-chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert float(response.headers["x-process-time"]) >= 0
