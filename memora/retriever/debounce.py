"""
Debouncer

Cancellable deferred execution: every trigger cancels the pending timer and
schedules a new one, so only the value that survives a full quiet window
runs.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger("memora.retriever.debounce")

T = TypeVar("T")


class Debouncer(Generic[T]):
    """
    Runs `callback(value)` once input has been quiet for `delay` seconds.

    Must be triggered from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[T], Awaitable[object]]):
        self._delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a timer is waiting to fire"""
        return self._handle is not None

    @property
    def task(self) -> Optional[asyncio.Task]:
        """Task of the most recently fired callback"""
        return self._task

    def trigger(self, value: T) -> None:
        """Restart the quiet window with a new value"""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire, value)

    def cancel(self) -> None:
        """Drop the pending timer; a callback already running is not affected"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, value: T) -> None:
        self._handle = None
        self._task = asyncio.ensure_future(self._callback(value))
        self._task.add_done_callback(self._on_done)

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Debounced callback failed: %s", error)

    async def wait(self) -> None:
        """Wait for the pending timer (if any) to fire and its callback to finish"""
        while self._handle is not None:
            await asyncio.sleep(self._delay / 4 or 0.001)
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
