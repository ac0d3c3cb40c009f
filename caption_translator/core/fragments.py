"""Fragment buffer: coalesce rapid DOM caption updates into one string.

WHY: When captions are scraped from the DOM, one line arrives as a burst
of partial updates (word-by-word rendering, overlapping nodes, repeated
mutations of the same node). Handing each update to the merger would
translate half-sentences and flicker the overlay.

HOW: New fragments are appended to an accumulator unless already
contained in it. Every append restarts a quiet-period DebounceTimer; when
it fires uninterrupted the trimmed accumulator is handed to ``on_settled``
and the accumulator is cleared.

RULES:
- Only the observed capture path uses this buffer
- A fragment already contained in the accumulator changes nothing (the
  timer is not restarted)
- If ``is_superseded()`` is true at settle time the text is discarded
- on_settled may be a plain function or a coroutine function
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

from caption_translator.config import SETTLE_DELAY_S
from caption_translator.core.text import append_fragment
from caption_translator.core.timers import DebounceTimer

logger = logging.getLogger(__name__)


class FragmentBuffer:
    """Accumulate observed fragments until a quiet period passes."""

    def __init__(
        self,
        on_settled: Callable[[str], Any],
        settle_delay_s: float = SETTLE_DELAY_S,
        is_superseded: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._on_settled = on_settled
        self.settle_delay_s = settle_delay_s
        self._is_superseded = is_superseded or (lambda: False)
        self._timer = DebounceTimer("fragment-settle")
        self.text = ""

    @property
    def pending(self) -> bool:
        return self._timer.pending

    @property
    def task(self):
        """Task of the most recent coroutine settle callback, if any."""
        return self._timer.task

    def add(self, fragment: str) -> bool:
        """Add a fragment; returns True when it was appended."""
        fragment = fragment.strip()
        if not fragment or fragment in self.text:
            return False

        self.text = append_fragment(self.text, fragment)
        self._timer.schedule(self.settle_delay_s, self._settle)
        return True

    def clear(self) -> None:
        self._timer.cancel()
        self.text = ""

    async def _settle(self) -> None:
        settled = self.text.strip()
        self.text = ""

        if self._is_superseded():
            logger.debug("Discarding settled fragment buffer %r", settled)
            return
        if not settled:
            return

        result = self._on_settled(settled)
        if inspect.isawaitable(result):
            await result
