"""Tests for the streaming chat client, with HTTP mocked by httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from studybrain.client.chat import ChatClient
from studybrain.client.errors import ChatRequestError, QuotaExhaustedError, RateLimitError
from studybrain.schemas.chat import ChatMessage

BASE_URL = "http://studybrain.test"

HELLO_CHUNKS = [
    b'data: {"choices":[{"delta":{"con',
    b'tent":"Hel"}}]}\n\ndata: {"choices":[{"delta":{"content":"lo"}}]}\n',
    b"\ndata: [DONE]\n",
]


async def _aiter(chunks):
    for chunk in chunks:
        yield chunk


def make_client(handler, api_key: str = "secret") -> ChatClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ChatClient(base_url=BASE_URL, api_key=api_key, http_client=http_client)


def stream_handler(seen: list[httpx.Request], chunks=HELLO_CHUNKS):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=_aiter(chunks))

    return handler


class TestStreaming:
    def test_pdf_chat_accumulates_hello(self):
        seen: list[httpx.Request] = []
        fragments: list[str] = []
        client = make_client(stream_handler(seen))
        history = [ChatMessage(role="user", content="Summarize this page")]

        messages = asyncio.run(client.stream_pdf_chat(history, page_text="Newton's laws", on_fragment=fragments.append))

        assert fragments == ["Hel", "lo"]
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[-1].content == "Hello"
        request = seen[0]
        assert request.url.path == "/pdf-chat"
        assert request.headers["authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["pageText"] == "Newton's laws"
        assert body["messages"] == [{"role": "user", "content": "Summarize this page"}]

    def test_video_chat_payload(self):
        seen: list[httpx.Request] = []
        client = make_client(stream_handler(seen))
        asyncio.run(
            client.stream_video_chat(
                [ChatMessage(role="user", content="What is he doing?")],
                video_id="abc123",
                video_title="Lecture",
                current_time=95,
                start_time=60,
            )
        )
        body = json.loads(seen[0].content)
        assert seen[0].url.path == "/video-chat"
        assert body["videoId"] == "abc123"
        assert body["currentTime"] == 95
        assert body["startTime"] == 60
        assert "endTime" not in body

    def test_stream_chat_dispatches_by_endpoint(self):
        seen: list[httpx.Request] = []
        client = make_client(stream_handler(seen))
        messages = asyncio.run(
            client.stream_chat("pdf-chat", [ChatMessage(role="user", content="hi")], page_text="text")
        )
        assert messages[-1].content == "Hello"

    def test_stream_chat_rejects_unknown_endpoint(self):
        client = make_client(stream_handler([]))
        with pytest.raises(ValueError):
            asyncio.run(client.stream_chat("nope", []))

    def test_no_auth_header_without_key(self):
        seen: list[httpx.Request] = []
        client = make_client(stream_handler(seen), api_key="")
        asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")]))
        assert "authorization" not in seen[0].headers


class TestErrors:
    @staticmethod
    def error_handler(status: int, body):
        def handler(request: httpx.Request) -> httpx.Response:
            if isinstance(body, dict):
                return httpx.Response(status, json=body)
            return httpx.Response(status, text=body)

        return handler

    def test_rate_limit(self):
        client = make_client(self.error_handler(429, {"error": "Rate limit exceeded."}))
        with pytest.raises(RateLimitError) as exc_info:
            asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")]))
        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "Rate limit exceeded."

    def test_quota_exhausted_default_message(self):
        client = make_client(self.error_handler(402, {}))
        with pytest.raises(QuotaExhaustedError) as exc_info:
            asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")]))
        assert "credits" in exc_info.value.message

    def test_other_status_is_generic_error(self):
        client = make_client(self.error_handler(500, "upstream exploded"))
        with pytest.raises(ChatRequestError) as exc_info:
            asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")]))
        assert not isinstance(exc_info.value, (RateLimitError, QuotaExhaustedError))
        assert exc_info.value.status_code == 500

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(ChatRequestError):
            asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")]))

    def test_timeout_maps_to_chat_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        client = make_client(handler)
        with pytest.raises(ChatRequestError):
            asyncio.run(client.post_action("pdf-chat", {"action": "translate"}))

    def test_empty_body(self):
        client = make_client(stream_handler([], chunks=[]))
        with pytest.raises(ChatRequestError, match="No response body"):
            asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")]))


class TestPostAction:
    def test_returns_json(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"translation": "नमस्ते"})

        client = make_client(handler)
        data = asyncio.run(client.post_action("pdf-chat", {"action": "translate", "pageText": "hello"}))
        assert data == {"translation": "नमस्ते"}
        assert json.loads(seen[0].content)["action"] == "translate"

    def test_error_status_mapped(self):
        client = make_client(lambda request: httpx.Response(429, json={"error": "slow down"}))
        with pytest.raises(RateLimitError, match="slow down"):
            asyncio.run(client.post_action("pdf-chat", {"action": "quiz"}))

    def test_non_object_body_rejected(self):
        client = make_client(lambda request: httpx.Response(200, json=["not", "an", "object"]))
        with pytest.raises(ChatRequestError):
            asyncio.run(client.post_action("pdf-chat", {"action": "quiz"}))


class TestOverallTimeout:
    def test_slow_stream_is_cut_off(self):
        async def trickle():
            yield b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n\n'
            for _ in range(20):
                await asyncio.sleep(0.05)
                yield b": keep-alive\n"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=trickle())

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = ChatClient(base_url=BASE_URL, api_key="", timeout=0.2, http_client=http_client)
        with pytest.raises(ChatRequestError, match="timed out"):
            asyncio.run(client.stream_pdf_chat([ChatMessage(role="user", content="hi")]))

    def test_slow_action_is_cut_off(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, json={"translation": "late"})

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = ChatClient(base_url=BASE_URL, api_key="", timeout=0.1, http_client=http_client)
        with pytest.raises(ChatRequestError, match="timed out"):
            asyncio.run(client.post_action("pdf-chat", {"action": "translate"}))
