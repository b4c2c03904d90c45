"""HTTP client for the AI chat endpoints (``/pdf-chat`` and ``/video-chat``).

Every call is bounded by ``timeout`` as a whole, including the time spent
reading a streamed reply; httpx's own timeout only bounds each step.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

import httpx

from studybrain.client.errors import ChatRequestError, QuotaExhaustedError, RateLimitError
from studybrain.client.sse import decode_sse_stream
from studybrain.config import settings
from studybrain.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)

PDF_CHAT = "pdf-chat"
VIDEO_CHAT = "video-chat"


class AssistantAccumulator:
    """Grows exactly one assistant message per turn as fragments arrive."""

    def __init__(self, messages: list[ChatMessage]):
        self.messages = list(messages)
        self.text = ""

    def append(self, fragment: str) -> None:
        self.text += fragment
        message = ChatMessage(role="assistant", content=self.text)
        if self.messages and self.messages[-1].role == "assistant":
            self.messages[-1] = message
        else:
            self.messages.append(message)


def error_for_response(status_code: int, body: Any) -> ChatRequestError:
    message = body.get("error") if isinstance(body, dict) else None
    if status_code == 429:
        return RateLimitError(message, status_code)
    if status_code == 402:
        return QuotaExhaustedError(message, status_code)
    return ChatRequestError(message, status_code)


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ChatClient:
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

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
            yield client

    async def stream_chat(
        self,
        endpoint: str,
        messages: list[ChatMessage],
        on_fragment: Callable[[str], None] | None = None,
        **context: Any,
    ) -> list[ChatMessage]:
        if endpoint == PDF_CHAT:
            return await self.stream_pdf_chat(messages, on_fragment=on_fragment, **context)
        if endpoint == VIDEO_CHAT:
            return await self.stream_video_chat(messages, on_fragment=on_fragment, **context)
        raise ValueError(f"Unknown chat endpoint: {endpoint}")

    async def stream_pdf_chat(
        self,
        messages: list[ChatMessage],
        page_text: str = "",
        on_fragment: Callable[[str], None] | None = None,
    ) -> list[ChatMessage]:
        payload = {"messages": [m.model_dump() for m in messages], "pageText": page_text}
        return await self._stream(PDF_CHAT, payload, messages, on_fragment)

    async def stream_video_chat(
        self,
        messages: list[ChatMessage],
        video_id: str,
        video_title: str = "",
        current_time: int = 0,
        start_time: int | None = None,
        end_time: int | None = None,
        on_fragment: Callable[[str], None] | None = None,
    ) -> list[ChatMessage]:
        payload: dict[str, Any] = {
            "messages": [m.model_dump() for m in messages],
            "videoId": video_id,
            "videoTitle": video_title,
            "currentTime": int(current_time),
        }
        if start_time is not None:
            payload["startTime"] = start_time
        if end_time is not None:
            payload["endTime"] = end_time
        return await self._stream(VIDEO_CHAT, payload, messages, on_fragment)

    async def _stream(
        self,
        endpoint: str,
        payload: dict[str, Any],
        messages: list[ChatMessage],
        on_fragment: Callable[[str], None] | None,
    ) -> list[ChatMessage]:
        """POST a chat turn and return ``messages`` plus the streamed assistant reply."""
        try:
            return await asyncio.wait_for(self._stream_turn(endpoint, payload, messages, on_fragment), self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("%s stream exceeded %ss", endpoint, self.timeout)
            raise ChatRequestError("AI request timed out") from e

    async def _stream_turn(
        self,
        endpoint: str,
        payload: dict[str, Any],
        messages: list[ChatMessage],
        on_fragment: Callable[[str], None] | None,
    ) -> list[ChatMessage]:
        accumulator = AssistantAccumulator(messages)
        received = False

        def handle(fragment: str) -> None:
            accumulator.append(fragment)
            if on_fragment is not None:
                on_fragment(fragment)

        async def body(response: httpx.Response) -> AsyncIterator[bytes]:
            nonlocal received
            async for chunk in response.aiter_bytes():
                if chunk:
                    received = True
                    yield chunk

        async with self._client() as client:
            try:
                async with client.stream(
                    "POST", self._url(endpoint), json=payload, headers=self._headers(), timeout=self.timeout
                ) as response:
                    if not response.is_success:
                        await response.aread()
                        error = error_for_response(response.status_code, _json_or_none(response))
                        logger.warning("%s failed with %s: %s", endpoint, response.status_code, error.message)
                        raise error
                    done = await decode_sse_stream(body(response), handle)
            except httpx.HTTPError as e:
                logger.error("%s request failed: %s", endpoint, e)
                raise ChatRequestError("Failed to get AI response") from e

        if not received:
            raise ChatRequestError("No response body")
        if not done:
            logger.debug("%s stream ended without [DONE]", endpoint)
        return accumulator.messages

    async def post_action(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Non-streamed request (translate, quiz, check-answers); returns the JSON body."""
        try:
            return await asyncio.wait_for(self._post(endpoint, payload), self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("%s %s exceeded %ss", endpoint, payload.get("action"), self.timeout)
            raise ChatRequestError("AI request timed out") from e

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with self._client() as client:
            try:
                response = await client.post(
                    self._url(endpoint), json=payload, headers=self._headers(), timeout=self.timeout
                )
            except httpx.HTTPError as e:
                logger.error("%s %s request failed: %s", endpoint, payload.get("action"), e)
                raise ChatRequestError("Failed to reach AI service") from e

        body = _json_or_none(response)
        if not response.is_success:
            raise error_for_response(response.status_code, body)
        if not isinstance(body, dict):
            raise ChatRequestError("Malformed AI response", response.status_code)
        return body
