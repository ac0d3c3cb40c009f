"""Cancellable one-shot timers for debouncing on the asyncio loop.

WHY: The fragment buffer and the hover lookup both need "restart the
quiet-period timer on every event" semantics, and some timer callbacks
are coroutines (they end in a translation call). A tiny wrapper around
loop.call_later keeps exactly one pending timer per owner and tracks the
task a coroutine callback spawns.

HOW: schedule() cancels whatever is pending, then arms a new
asyncio.TimerHandle. When it fires, a plain callback is called directly;
a coroutine function is wrapped in a task kept on ``self.task``.

RULES:
- At most one timer is pending per DebounceTimer (debounce, not throttle)
- cancel() stops a pending timer; a task that already started keeps running
- Must be used from inside a running event loop
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Default engine clock: monotonic milliseconds."""
    return time.monotonic() * 1000.0


class DebounceTimer:
    """A single restartable delay."""

    def __init__(self, name: str = "timer") -> None:
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None
        self.task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay_s: float, callback: Callable[[], Any]) -> None:
        """(Re)arm the timer; any pending callback is cancelled first."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay_s, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], Any]) -> None:
        self._handle = None
        if inspect.iscoroutinefunction(callback):
            self.task = asyncio.ensure_future(callback())
            self.task.add_done_callback(self._log_failure)
        else:
            callback()

    def _log_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "%s callback failed", self.name, exc_info=(type(exc), exc, exc.__traceback__)
            )
