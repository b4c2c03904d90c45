"""Incremental decoder for OpenAI-style ``text/event-stream`` chat responses.

Transport chunks do not line up with lines, frames or even UTF-8 code
points, so bytes go through a stateful decoder into a text buffer and only
complete lines are consumed. A ``data:`` line whose JSON does not parse is
pushed back onto the buffer and extraction stops until more bytes arrive.
"""
import codecs
import json
import logging
from typing import Any, AsyncIterable, Callable

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def delta_content(frame: Any) -> str | None:
    """``choices[0].delta.content`` of a parsed chunk, if present."""
    if not isinstance(frame, dict):
        return None
    choices = frame.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


class SSEDecoder:
    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, chunk: bytes) -> list[str]:
        """Decode one transport chunk and return the text fragments it completed."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def close(self) -> list[str]:
        """Flush at end of stream; an unterminated last line is processed once."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer and not self._buffer.endswith("\n"):
            self._buffer += "\n"
        return self._drain(final=True)

    def _drain(self, final: bool = False) -> list[str]:
        fragments: list[str] = []
        while not self.done:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            if line.endswith("\r"):
                line = line[:-1]

            if line.startswith(":") or not line.strip():
                continue
            if not line.startswith(DATA_PREFIX):
                continue

            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                self.done = True
                self._buffer = ""
                break

            try:
                frame = json.loads(payload)
            except ValueError:
                if final:
                    logger.debug("Dropping unparseable SSE frame at end of stream: %.80s", payload)
                    continue
                # incomplete frame: retry once more bytes arrive
                self._buffer = line + "\n" + self._buffer
                break

            content = delta_content(frame)
            if content:
                fragments.append(content)
        return fragments


async def decode_sse_stream(chunks: AsyncIterable[bytes], on_fragment: Callable[[str], None]) -> bool:
    """Feed ``chunks`` through an SSEDecoder, calling ``on_fragment`` in arrival order.

    Returns True when the ``[DONE]`` sentinel was seen.
    """
    decoder = SSEDecoder()
    async for chunk in chunks:
        for fragment in decoder.feed(chunk):
            on_fragment(fragment)
        if decoder.done:
            return True
    for fragment in decoder.close():
        on_fragment(fragment)
    return decoder.done
