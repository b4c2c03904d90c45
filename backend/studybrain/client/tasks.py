import asyncio
import logging
from typing import Any, Awaitable, Generator, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellableTask(Generic[T]):
    """An ``asyncio.Task`` with an explicit, idempotent ``cancel()``.

    Awaiting the wrapper awaits the task; a cancelled task raises
    ``asyncio.CancelledError`` to its awaiters.
    """

    def __init__(self, coro: Awaitable[T], name: str | None = None):
        self._task: asyncio.Task[T] = asyncio.ensure_future(coro)
        self.name = name or self._task.get_name()

    @property
    def future(self) -> "asyncio.Task[T]":
        return self._task

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> bool:
        if self._task.done():
            return False
        logger.debug("Cancelling task %s", self.name)
        return self._task.cancel()

    def result(self) -> T:
        return self._task.result()

    def exception(self) -> BaseException | None:
        return self._task.exception()

    def add_done_callback(self, callback: Any) -> None:
        self._task.add_done_callback(lambda _: callback(self))

    def __await__(self) -> Generator[Any, None, T]:
        return self._task.__await__()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "done" if self.done else "pending"
        return f"<CancellableTask {self.name} {state}>"
