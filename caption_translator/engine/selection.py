"""Interactive selection model: word clicks, phrase building, hover lookups.

WHY: The learner interacts with the displayed line word by word. Click
for a quick translation, modifier-click to build a phrase, hover over a
flagged word for a cached gloss, right-click to flag a word as unknown
or to protect it in the glossary. Every one of these ends in an async
lookup that can resolve after the pointer, the selection or the whole
line has moved on.

HOW: Transitions on SessionState.selection:
  click            → Single(word)                 (any prior selection cleared)
  accumulate-click → Accumulating(+word | -word)  (empty list → Empty)
  click_outside    → Empty
Every lookup remembers the selection object (or hover generation) it was
started for and only shows its tooltip if that is still current.

RULES:
- Plain click always translates over the network (no cache)
- Accumulated words are case-folded keys joined with single spaces, in
  click order; the tooltip anchors to the last token in the list
- Hover only reacts to unknown words, after HOVER_DELAY_S, one pending
  timer at a time; hover-end cancels it and hides the tooltip
- Hover lookups use and fill the per-word cache; failed lookups are not cached
- Right-click toggles unknown status and restyles every token with the
  same key; with the glossary modifier it toggles the glossary instead
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from caption_translator.config import HOVER_DELAY_S
from caption_translator.core.models import (
    AccumulatingSelection,
    EmptySelection,
    SelectedWord,
    SelectionState,
    SingleSelection,
    Token,
    TranslationResult,
)
from caption_translator.core.text import clean_word
from caption_translator.core.timers import DebounceTimer
from caption_translator.engine.presentation import (
    SELECTED_MULTI,
    SELECTED_SINGLE,
    PresentationSink,
)
from caption_translator.engine.session import SessionState
from caption_translator.translation.orchestrator import TranslationOrchestrator

logger = logging.getLogger(__name__)


def select_single(token: Token, word: str) -> SingleSelection:
    return SingleSelection(SelectedWord(word=word, token=token))


def toggle_accumulated(state: SelectionState, token: Token, word: str) -> SelectionState:
    """Add ``token`` to an accumulating selection, or remove it if present.

    Empty and Single states start a fresh accumulation. Removing the last
    word collapses to EmptySelection.
    """
    items = list(state.items) if isinstance(state, AccumulatingSelection) else []
    kept = [item for item in items if item.token is not token]
    if len(kept) == len(items):
        kept.append(SelectedWord(word=word, token=token))
    if not kept:
        return EmptySelection()
    return AccumulatingSelection(tuple(kept))


class SelectionModel:
    """React to token events from the presentation sink."""

    def __init__(
        self,
        session: SessionState,
        orchestrator: TranslationOrchestrator,
        sink: PresentationSink,
        target_language: Callable[[], str],
        hover_delay_s: float = HOVER_DELAY_S,
        on_glossary_changed: Optional[Callable[[], Awaitable[Any]]] = None,
        persist: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        self._session = session
        self._orchestrator = orchestrator
        self._sink = sink
        self._target_language = target_language
        self.hover_delay_s = hover_delay_s
        self._on_glossary_changed = on_glossary_changed
        self._persist = persist
        self._hover_timer = DebounceTimer("hover-lookup")
        self._hover_token: Optional[Token] = None
        self._hover_generation = 0

    @property
    def hover_task(self):
        return self._hover_timer.task

    @property
    def hover_pending(self) -> bool:
        return self._hover_timer.pending

    # ------------------------------------------------------------------
    # Clicks
    # ------------------------------------------------------------------

    async def click(self, token: Token, accumulate: bool = False) -> Optional[TranslationResult]:
        """Handle a click on a word token.

        Returns:
            The lookup result, or None when nothing was translated.
        """
        self._sink.hide_tooltip()
        word = clean_word(token.text)
        if not word:
            return None

        previous = self._session.selection
        if isinstance(previous, SingleSelection):
            self._sink.set_selected(previous.item.token, None)

        if accumulate:
            return await self._accumulate(previous, token)

        self._clear_styling(previous)
        state = select_single(token, word)
        self._session.selection = state
        self._sink.set_selected(token, SELECTED_SINGLE)
        return await self._lookup(state, token, word)

    async def _accumulate(self, previous: SelectionState, token: Token) -> Optional[TranslationResult]:
        state = toggle_accumulated(previous, token, token.key)
        self._session.selection = state

        if not isinstance(state, AccumulatingSelection):
            self._sink.set_selected(token, None)
            self._sink.hide_tooltip()
            return None

        self._sink.set_selected(token, SELECTED_MULTI if state.contains(token) else None)
        return await self._lookup(state, state.last_token, state.phrase)

    async def _lookup(
        self,
        state: SelectionState,
        anchor: Token,
        text: str,
    ) -> TranslationResult:
        self._sink.set_pending(anchor, True)
        try:
            result = await self._orchestrator.translate(text, self._target_language())
        finally:
            self._sink.set_pending(anchor, False)

        if self._session.selection is not state:
            logger.debug("Dropping lookup for superseded selection %r", text)
            return result
        if result.translated_text:
            self._sink.show_tooltip(anchor, result.translated_text)
        return result

    def click_outside(self) -> None:
        """Clear single and accumulating selections and hide the tooltip."""
        self._clear_styling(self._session.selection)
        self._session.reset_selection()
        self._sink.hide_tooltip()

    def _clear_styling(self, state: SelectionState) -> None:
        if isinstance(state, SingleSelection):
            self._sink.set_selected(state.item.token, None)
        elif isinstance(state, AccumulatingSelection):
            for item in state.items:
                self._sink.set_selected(item.token, None)

    # ------------------------------------------------------------------
    # Hover
    # ------------------------------------------------------------------

    def hover_start(self, token: Token) -> None:
        self._hover_timer.cancel()
        if not token.is_unknown or not token.key:
            return

        self._hover_generation += 1
        generation = self._hover_generation
        self._hover_token = token

        async def lookup() -> None:
            await self._hover_lookup(token, generation)

        self._hover_timer.schedule(self.hover_delay_s, lookup)

    def hover_end(self, token: Optional[Token] = None) -> None:
        self._hover_timer.cancel()
        self._hover_generation += 1
        self._hover_token = None
        self._sink.hide_tooltip()

    async def _hover_lookup(self, token: Token, generation: int) -> None:
        cached = self._session.cached_translation(token.key)
        if cached:
            self._sink.show_tooltip(token, cached)
            return

        self._sink.set_pending(token, True)
        try:
            result = await self._orchestrator.translate(token.key, self._target_language())
        finally:
            self._sink.set_pending(token, False)

        if not result.failed and result.translated_text:
            self._session.cache_translation(token.key, result.translated_text)

        if generation != self._hover_generation or self._hover_token is not token:
            logger.debug("Hover ended before lookup of %r resolved", token.key)
            return
        if result.translated_text:
            self._sink.show_tooltip(token, result.translated_text)

    # ------------------------------------------------------------------
    # Right-click
    # ------------------------------------------------------------------

    async def secondary_click(self, token: Token, glossary_modifier: bool = False) -> Optional[bool]:
        """Toggle unknown status (or glossary membership with the modifier).

        Returns:
            The new membership (True = now unknown / in glossary), or None
            when the token is not a word.
        """
        if not token.key:
            return None

        if glossary_modifier:
            added = self._session.toggle_glossary(token.key)
            self._orchestrator.configure(glossary=self._session.glossary)
            self._save({"glossary": ", ".join(self._session.glossary)})
            if self._on_glossary_changed is not None:
                await self._on_glossary_changed()
            return added

        status = self._session.toggle_unknown(token.key)
        token.is_unknown = bool(status)
        restyled: List[Token] = self._session.tokens_for(token.key)
        if token not in restyled:
            restyled.append(token)
        for same in restyled:
            self._sink.restyle(same, bool(status))
        self._save({"unknownWords": sorted(self._session.unknown_words)})
        logger.info("Word marked as %s: %s", "unknown" if status else "known", token.key)
        return status

    def _save(self, update: Dict[str, Any]) -> None:
        if self._persist is not None:
            self._persist(update)

    def cancel(self) -> None:
        self._hover_timer.cancel()
        self._hover_generation += 1
        self._hover_token = None
