"""Page translation cache.

Translations are memoized under ``"{page}-{language}"``. At most one request
per key is in flight; navigating to another page cancels the request of the
page the reader left. A successful translation starts a background prefetch
of the next few pages.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable

from studybrain.client.chat import PDF_CHAT, ChatClient
from studybrain.client.errors import TranslationCancelledError, TranslationError
from studybrain.client.tasks import CancellableTask
from studybrain.config import settings

logger = logging.getLogger(__name__)

IDENTITY_LANGUAGES = {"english", "en"}
PROGRESS_CAP = 90
PROGRESS_STEP = 10


class TranslationState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


def cache_key(page: int, language: str) -> str:
    return f"{page}-{language}"


def is_identity(language: str) -> bool:
    return language.strip().lower() in IDENTITY_LANGUAGES


class TranslationCache:
    def __init__(
        self,
        client: ChatClient,
        page_text_provider: Callable[[int], str | None] | None = None,
        language_default: str = "english",
        total_pages: int | None = None,
        debounce: float | None = None,
        prefetch_ahead: int | None = None,
        prefetch_spacing: float | None = None,
        progress_interval: float = 0.3,
    ):
        self.client = client
        self.page_text_provider = page_text_provider
        self.language_default = language_default
        self.total_pages = total_pages
        self.debounce = settings.translation_debounce_seconds if debounce is None else debounce
        self.prefetch_ahead = settings.prefetch_ahead if prefetch_ahead is None else prefetch_ahead
        self.prefetch_spacing = settings.prefetch_spacing_seconds if prefetch_spacing is None else prefetch_spacing
        self.progress_interval = progress_interval
        self.progress = 0

        self._cache: dict[str, str] = {}
        self._states: dict[str, TranslationState] = {}
        self._in_flight: dict[str, CancellableTask[str]] = {}
        self._foreground: str | None = None
        self._debounce_task: CancellableTask[None] | None = None
        self._prefetch_task: CancellableTask[None] | None = None
        self._ticker: CancellableTask[None] | None = None

    def get(self, page: int, language: str | None = None) -> str | None:
        return self._cache.get(cache_key(page, language or self.language_default))

    def state(self, page: int, language: str | None = None) -> TranslationState:
        return self._states.get(cache_key(page, language or self.language_default), TranslationState.IDLE)

    async def translate(self, page: int, language: str | None = None, page_text: str | None = None) -> str:
        """Translated text of ``page``, from cache or from one request per key.

        Raises TranslationCancelledError when navigation superseded the
        request and TranslationError when it failed.
        """
        language = language or self.language_default
        if is_identity(language):
            return page_text if page_text is not None else self._page_text(page) or ""

        key = cache_key(page, language)
        if self._foreground is not None and self._foreground != key:
            previous = self._in_flight.get(self._foreground)
            if previous is not None:
                logger.debug("Cancelling translation %s in favour of %s", self._foreground, key)
                previous.cancel()
        self._foreground = key

        if key in self._cache:
            self._stop_ticker()
            self.progress = 100
            return self._cache[key]

        task = self._in_flight.get(key)
        if task is None:
            text = page_text if page_text is not None else self._page_text(page)
            if not text:
                raise TranslationError(f"No text available for page {page}")
            task = self._spawn(key, text, language)

        self._start_ticker()
        succeeded = False
        try:
            await asyncio.wait({task.future})
            if task.cancelled:
                raise TranslationCancelledError(f"Translation of page {page} was cancelled")
            exc = task.exception()
            if isinstance(exc, TranslationError):
                raise exc
            if exc is not None:
                raise TranslationError(str(exc)) from exc
            succeeded = True
        finally:
            self._finish_progress(key, succeeded)

        self._schedule_prefetch(page, language)
        return task.result()

    def on_page_change(self, page: int, language: str | None = None) -> CancellableTask[None] | None:
        """Debounced re-translation check after navigation.

        Must be called from a running event loop.
        """
        language = language or self.language_default
        self._cancel_prefetch()
        if self._debounce_task is not None:
            self._debounce_task.cancel()
            self._debounce_task = None
        if is_identity(language):
            return None
        self._debounce_task = CancellableTask(
            self._debounced_translate(page, language), name=f"debounce-{cache_key(page, language)}"
        )
        return self._debounce_task

    async def close(self) -> None:
        tasks = [t for t in (self._debounce_task, self._prefetch_task, self._ticker) if t is not None]
        tasks.extend(self._in_flight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*(t.future for t in tasks), return_exceptions=True)
        self._debounce_task = self._prefetch_task = self._ticker = None
        self._foreground = None
        self.progress = 0

    def _page_text(self, page: int) -> str | None:
        if self.page_text_provider is None:
            return None
        return self.page_text_provider(page)

    def _spawn(self, key: str, text: str, language: str) -> CancellableTask[str]:
        task = CancellableTask(self._fetch(text, language), name=f"translate-{key}")
        self._in_flight[key] = task
        self._states[key] = TranslationState.REQUESTING
        task.add_done_callback(lambda t: self._settle(key, t))
        return task

    async def _fetch(self, text: str, language: str) -> str:
        data = await self.client.post_action(
            PDF_CHAT, {"action": "translate", "pageText": text, "language": language, "messages": []}
        )
        translation = data.get("translation")
        if not isinstance(translation, str):
            raise TranslationError("Malformed translation response")
        return translation

    def _settle(self, key: str, task: CancellableTask[str]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled:
            self._states[key] = TranslationState.CANCELLED
            logger.debug("Translation %s cancelled", key)
            return
        exc = task.exception()
        if exc is not None:
            self._states[key] = TranslationState.FAILED
            logger.warning("Translation %s failed: %s", key, exc)
            return
        self._cache[key] = task.result()
        self._states[key] = TranslationState.SUCCEEDED

    async def _debounced_translate(self, page: int, language: str) -> None:
        await asyncio.sleep(self.debounce)
        if cache_key(page, language) in self._cache:
            return
        try:
            await self.translate(page, language)
        except TranslationCancelledError:
            logger.debug("Debounced translation of page %s superseded", page)
        except TranslationError as e:
            logger.warning("Translation of page %s failed: %s", page, e)

    def _schedule_prefetch(self, page: int, language: str) -> None:
        if self.page_text_provider is None or self.prefetch_ahead <= 0:
            return
        self._cancel_prefetch()
        self._prefetch_task = CancellableTask(
            self._prefetch_pages(page, language), name=f"prefetch-{cache_key(page, language)}"
        )

    def _cancel_prefetch(self) -> None:
        if self._prefetch_task is not None:
            self._prefetch_task.cancel()
            self._prefetch_task = None

    async def _prefetch_pages(self, page: int, language: str) -> None:
        last = page + self.prefetch_ahead
        if self.total_pages is not None:
            last = min(last, self.total_pages)
        issued = False
        for next_page in range(page + 1, last + 1):
            key = cache_key(next_page, language)
            if key in self._cache or key in self._in_flight:
                continue
            text = self._page_text(next_page)
            if not text:
                continue
            if issued:
                await asyncio.sleep(self.prefetch_spacing)
                if key in self._cache or key in self._in_flight:
                    continue
            task = self._spawn(key, text, language)
            issued = True
            try:
                await asyncio.wait({task.future})
            except asyncio.CancelledError:
                # a foreground reader may have adopted the request
                if key != self._foreground:
                    task.cancel()
                raise
            if not task.cancelled and task.exception() is not None:
                logger.debug("Prefetch of page %s failed: %s", next_page, task.exception())

    def _start_ticker(self) -> None:
        self._stop_ticker()
        self.progress = 0
        self._ticker = CancellableTask(self._tick(), name="translation-progress")

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _tick(self) -> None:
        while self.progress < PROGRESS_CAP:
            await asyncio.sleep(self.progress_interval)
            self.progress = min(PROGRESS_CAP, self.progress + PROGRESS_STEP)

    def _finish_progress(self, key: str, succeeded: bool) -> None:
        if self._foreground != key:
            return
        self._stop_ticker()
        self.progress = 100 if succeeded else 0
