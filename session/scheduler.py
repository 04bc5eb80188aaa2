import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Protocol, Set

logger = logging.getLogger(__name__)

AsyncCallback = Callable[[], Awaitable[None]]


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class Scheduler(ABC):
    """
    Timer boundary for the session layer.

    Controller and executor never touch the clock directly, so tests can
    swap in a manual scheduler and step through backoff deterministically.
    """

    @abstractmethod
    def call_later(self, delay: float, callback: AsyncCallback) -> ScheduledCall:
        """Run `callback()` as a task after `delay` seconds."""
        raise NotImplementedError

    @abstractmethod
    async def sleep(self, delay: float) -> None:
        raise NotImplementedError


class AsyncioScheduler(Scheduler):
    """Scheduler on the running asyncio event loop."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def call_later(self, delay: float, callback: AsyncCallback) -> ScheduledCall:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, self._spawn, callback)

    def _spawn(self, callback: AsyncCallback) -> None:
        task = asyncio.ensure_future(callback())
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduled session task failed", exc_info=exc)

    async def sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)
