"""Presentation boundary: what the engine asks an overlay to draw.

WHY: The overlay itself (DOM, Qt, terminal) is outside the engine. The
engine only needs to push a rendered line, a tooltip, and a few token
state changes; the sink decides how they look and wires token events
(click, accumulate-click, right-click, hover) back to the
SelectionModel.

HOW: PresentationSink is an ABC with one method per visual effect.
ConsoleSink is a minimal implementation used by the CLI: it prints each
rendered line and logs the rest.

RULES:
- render() replaces the whole overlay content
- Token objects are the element handles; compare them by identity
- set_selected(token, None) removes any selection styling
- Sinks never call back into the engine synchronously from render()
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from typing import Optional, TextIO

from caption_translator.core.models import ProviderKind, RenderedLine, Token

logger = logging.getLogger(__name__)

SELECTED_SINGLE = "single"
SELECTED_MULTI = "multi"

_PROVIDER_BADGES = {
    ProviderKind.PRIMARY_AI: "AI",
    ProviderKind.SECONDARY_BULK: "GT",
    ProviderKind.ERROR: "ERR",
}


class PresentationSink(ABC):
    """Abstract overlay.

    To add a new overlay:
    1. Subclass PresentationSink
    2. Implement every abstract method
    3. Forward token events to SelectionModel.click / hover_start /
       hover_end / secondary_click / click_outside
    """

    @abstractmethod
    def render(self, line: RenderedLine) -> None:
        """Show ``line`` (tokens plus optional translated text)."""

    @abstractmethod
    def clear(self) -> None:
        """Hide the overlay (translation disabled)."""

    @abstractmethod
    def show_tooltip(self, token: Token, text: str) -> None:
        """Show a transient tooltip anchored to ``token``."""

    @abstractmethod
    def hide_tooltip(self) -> None:
        """Remove the tooltip, if any."""

    def set_pending(self, token: Token, pending: bool) -> None:
        """Mark ``token`` as waiting for a lookup (e.g. dimmed)."""

    def set_selected(self, token: Token, mode: Optional[str]) -> None:
        """Apply single/multi selection styling, or remove it with None."""

    def restyle(self, token: Token, is_unknown: bool) -> None:
        """Restyle ``token`` after its unknown-word status changed."""


class ConsoleSink(PresentationSink):
    """Print rendered lines to a stream; everything else goes to the log."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout

    def render(self, line: RenderedLine) -> None:
        words = " ".join(
            "*{}*".format(token.text) if token.is_unknown else token.text
            for token in line.tokens
        )
        print(words, file=self._stream, flush=True)
        if line.translated_text is not None:
            badge = _PROVIDER_BADGES.get(line.provider, "")
            prefix = "  [{}] ".format(badge) if badge else "  "
            print("{}{}".format(prefix, line.translated_text), file=self._stream, flush=True)

    def clear(self) -> None:
        logger.debug("Overlay cleared")

    def show_tooltip(self, token: Token, text: str) -> None:
        print("  {} → {}".format(token.text, text), file=self._stream, flush=True)

    def hide_tooltip(self) -> None:
        logger.debug("Tooltip hidden")
