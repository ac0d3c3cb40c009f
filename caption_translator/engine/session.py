"""Session state: everything the engine mutates, behind named transitions.

WHY: The current line, the rendered tokens, the word selection, the
learner's vocabulary and the per-word cache all change in response to
interleaved async callbacks. Keeping them in one explicit object, and
changing them only through named transitions, makes every ordering
hazard visible and testable.

HOW: SessionState is a plain class owned by the CaptionEngine and shared
with the SelectionModel. Each transition returns what changed so callers
can log or re-render.

RULES:
- apply_new_line() replaces the line, rebuilds tokens, resets selection
- line_id increases by one per accepted line and never repeats
- Only the newest translation request for the current line may render
- activate_source() is one-way: once STRUCTURED, always STRUCTURED
- Unknown words and the cache are keyed by word_key(); they outlive lines
- The cache is unbounded for the session and never evicted
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from caption_translator.core.models import (
    CaptureSource,
    DisplayedLine,
    EmptySelection,
    SelectionState,
    Token,
)
from caption_translator.core.text import split_words, word_key
from caption_translator.translation.glossary import parse_glossary, toggle_term

logger = logging.getLogger(__name__)


class SessionState:
    """Mutable state of one capture session."""

    def __init__(
        self,
        unknown_words: Iterable[str] = (),
        glossary: Sequence[str] = (),
    ) -> None:
        self.line: Optional[DisplayedLine] = None
        self.last_line: Optional[DisplayedLine] = None
        self.tokens: List[Token] = []
        self.selection: SelectionState = EmptySelection()
        self.unknown_words: Set[str] = {k for k in (word_key(w) for w in unknown_words) if k}
        self.glossary: List[str] = parse_glossary(list(glossary))
        self.cache: Dict[str, str] = {}
        self.source: Optional[CaptureSource] = None
        self.line_request_id: Optional[int] = None
        self._next_line_id = 1

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    @property
    def current_line_id(self) -> Optional[int]:
        return self.line.line_id if self.line is not None else None

    def apply_new_line(self, text: str, now_ms: float) -> DisplayedLine:
        line = DisplayedLine(text=text, first_shown_at_ms=now_ms, line_id=self._next_line_id)
        self._next_line_id += 1
        self.line = line
        self.last_line = line
        self.line_request_id = None
        self.tokens = self.build_tokens(text)
        self.selection = EmptySelection()
        return line

    def clear_line(self) -> None:
        """Forget the current line (overlay disabled); continuation history stays."""
        self.line = None
        self.tokens = []
        self.line_request_id = None
        self.selection = EmptySelection()

    def is_current(self, line_id: int) -> bool:
        return self.line is not None and self.line.line_id == line_id

    def begin_translation(self, request_id: int) -> None:
        """Record the newest translation request issued for the current line."""
        self.line_request_id = request_id

    def is_latest(self, line_id: int, request_id: int) -> bool:
        return self.is_current(line_id) and self.line_request_id == request_id

    def build_tokens(self, text: str) -> List[Token]:
        tokens = []
        for index, word in enumerate(split_words(text)):
            key = word_key(word)
            tokens.append(
                Token(text=word, key=key, index=index, is_unknown=bool(key) and key in self.unknown_words)
            )
        return tokens

    # ------------------------------------------------------------------
    # Capture source
    # ------------------------------------------------------------------

    def activate_source(self, source: CaptureSource) -> bool:
        """Make ``source`` the live producer; returns False if refused.

        STRUCTURED always wins and is permanent. OBSERVED is only accepted
        while no source is live.
        """
        if self.source is CaptureSource.STRUCTURED:
            return source is CaptureSource.STRUCTURED
        if source is CaptureSource.OBSERVED and self.source is not None:
            return True
        if self.source is not source:
            logger.info("Capture source: %s", source.value)
        self.source = source
        return True

    @property
    def structured_active(self) -> bool:
        return self.source is CaptureSource.STRUCTURED

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------

    def toggle_unknown(self, word: str) -> Optional[bool]:
        """Flip a word's unknown status; returns the new status (None for non-words)."""
        key = word_key(word)
        if not key:
            return None
        if key in self.unknown_words:
            self.unknown_words.discard(key)
            status = False
        else:
            self.unknown_words.add(key)
            status = True
        for token in self.tokens:
            if token.key == key:
                token.is_unknown = status
        return status

    def set_unknown_words(self, words: Iterable[str]) -> None:
        self.unknown_words = {k for k in (word_key(w) for w in words) if k}
        for token in self.tokens:
            token.is_unknown = bool(token.key) and token.key in self.unknown_words

    def toggle_glossary(self, word: str) -> Optional[bool]:
        """Add or remove a word from the glossary; returns True if added."""
        key = word_key(word)
        if not key:
            return None
        self.glossary, added = toggle_term(self.glossary, key)
        logger.info("Word %s glossary: %s", "added to" if added else "removed from", key)
        return added

    def tokens_for(self, key: str) -> List[Token]:
        return [token for token in self.tokens if token.key == key]

    # ------------------------------------------------------------------
    # Per-word cache
    # ------------------------------------------------------------------

    def cached_translation(self, key: str) -> Optional[str]:
        return self.cache.get(key)

    def cache_translation(self, key: str, translation: str) -> None:
        self.cache[key] = translation

    def reset_selection(self) -> None:
        self.selection = EmptySelection()
