"""OpenAI-compatible chat completions with model fallback on errors."""
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

import openai
from openai import AsyncOpenAI

from studybrain.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
QUOTA_MESSAGE = "AI credits exhausted. Please add credits in Settings."

_client: AsyncOpenAI | None = None
_current_model_index: int | None = None


class AIServiceError(Exception):
    """Upstream AI failure, carrying the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _get_client() -> AsyncOpenAI | None:
    global _client
    key = getattr(settings, "openai_api_key", None) or ""
    if not key or not key.strip():
        return None
    if _client is None:
        _client = AsyncOpenAI(
            api_key=key.strip(),
            base_url=settings.openai_base_url or None,
            timeout=settings.ai_request_timeout,
        )
    return _client


def _get_openai_models() -> list[str]:
    models_str = getattr(settings, "openai_models", None) or "gpt-4o-mini,gpt-4o"
    models = [m.strip() for m in models_str.split(",") if m.strip()]
    return models or ["gpt-4o-mini"]


def _get_current_openai_index() -> int:
    global _current_model_index
    models = _get_openai_models()
    if _current_model_index is None or _current_model_index >= len(models):
        _current_model_index = 0
    return _current_model_index


def _switch_to_next_openai_model() -> str:
    global _current_model_index
    models = _get_openai_models()
    idx = _get_current_openai_index()
    _current_model_index = (idx + 1) % len(models)
    new_model = models[_current_model_index]
    logger.info("Switching OpenAI model: %s -> %s", models[idx], new_model)
    return new_model


def to_service_error(e: Exception) -> AIServiceError:
    if isinstance(e, AIServiceError):
        return e
    if isinstance(e, openai.RateLimitError):
        if getattr(e, "code", None) == "insufficient_quota":
            return AIServiceError(QUOTA_MESSAGE, 402)
        return AIServiceError(RATE_LIMIT_MESSAGE, 429)
    if isinstance(e, openai.APIStatusError) and e.status_code == 402:
        return AIServiceError(QUOTA_MESSAGE, 402)
    return AIServiceError("AI service error", 500)


async def _with_fallback(call: Callable[[AsyncOpenAI, str], Awaitable[T]]) -> T:
    """Run ``call`` with each configured model in turn until one succeeds."""
    client = _get_client()
    if client is None:
        raise AIServiceError("OPENAI_API_KEY is not configured", 500)

    models = _get_openai_models()
    for attempt in range(len(models)):
        model_name = models[_get_current_openai_index()]
        try:
            logger.debug("OpenAI attempt %s/%s: model %s", attempt + 1, len(models), model_name)
            return await call(client, model_name)
        except openai.OpenAIError as e:
            logger.warning("OpenAI error for %s: %s", model_name, e)
            if attempt < len(models) - 1:
                _switch_to_next_openai_model()
            else:
                raise to_service_error(e) from e
    raise AIServiceError("No OpenAI models configured", 500)


async def open_chat_stream(messages: list[dict[str, str]]) -> AsyncIterator[str]:
    """Start a streamed completion and return its ``text/event-stream`` frames.

    The request is made before returning so upstream errors surface as
    AIServiceError while a proper status code can still be sent.
    """

    async def create(client: AsyncOpenAI, model: str):
        return await client.chat.completions.create(model=model, messages=messages, stream=True)

    stream = await _with_fallback(create)
    return iter_sse(stream)


async def iter_sse(stream: AsyncIterator[Any]) -> AsyncIterator[str]:
    try:
        async for chunk in stream:
            yield f"data: {chunk.model_dump_json(exclude_none=True)}\n\n"
    except openai.OpenAIError as e:
        # headers are already sent; the client sees a stream without [DONE]
        logger.error("OpenAI stream interrupted: %s", e)
        return
    yield "data: [DONE]\n\n"


async def complete(system_prompt: str, user_prompt: str) -> str:
    async def create(client: AsyncOpenAI, model: str) -> str:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        return (response.choices[0].message.content or "").strip()

    return await _with_fallback(create)


async def complete_with_tool(system_prompt: str, user_prompt: str, tool: dict) -> dict:
    """Force a call to ``tool`` and return its parsed arguments ({} when none came back)."""
    name = tool["function"]["name"]

    async def create(client: AsyncOpenAI, model: str) -> dict:
        response = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            tools=[tool],
            tool_choice={"type": "function", "function": {"name": name}},
        )
        tool_calls = response.choices[0].message.tool_calls or []
        if not tool_calls:
            logger.warning("Model %s returned no %s call", model, name)
            return {}
        try:
            return json.loads(tool_calls[0].function.arguments or "{}")
        except ValueError:
            logger.warning("Model %s returned unparseable %s arguments", model, name)
            return {}

    return await _with_fallback(create)
