"""Dataclasses and enums shared by every stage of the engine.

WHY: Capture adapters, the merger, the orchestrator, the selection model
and the presentation sink all pass the same handful of values around.
Typed dataclasses make those contracts explicit and keep host-specific
payloads (track cues, DOM nodes) out of the engine core.

HOW: Four groups:
  CaptionEvent       — tagged union, one variant per capture source
  DisplayedLine      — the single current line (replaced, never mutated)
  Token/RenderedLine — what the presentation sink draws
  TranslationResult  — orchestrator output, carries request identity
plus the three SelectionState variants used by the selection model.

RULES:
- DisplayedLine is frozen; a new line is a new object with a new line_id
- Token objects compare by identity: a token *is* its element handle
- TranslationResult.source_text and request_id identify the originating call
- Times are integer/float milliseconds from the engine clock
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Optional, Tuple, Union


class CaptureSource(str, enum.Enum):
    """Which adapter produced a caption event."""

    STRUCTURED = "structured"
    OBSERVED = "observed"


class ProviderKind(str, enum.Enum):
    """Provider reported for a translation result."""

    PRIMARY_AI = "primary-ai"
    SECONDARY_BULK = "secondary-bulk"
    NONE = "none"
    ERROR = "error"


class ProviderStrategy(str, enum.Enum):
    """Which provider(s) the orchestrator uses, and in what order.

    RULES:
    - auto: primary when a credential is present, secondary on any failure
    - force-primary: primary only; a missing credential is an error
    - force-secondary: secondary only
    """

    AUTO = "auto"
    FORCE_PRIMARY = "force-primary"
    FORCE_SECONDARY = "force-secondary"

    @classmethod
    def parse(cls, value: Union[str, "ProviderStrategy", None]) -> "ProviderStrategy":
        """Parse a stored strategy, accepting the legacy provider names."""
        if isinstance(value, ProviderStrategy):
            return value
        if not value:
            return cls.AUTO
        aliases = {"gemini": cls.FORCE_PRIMARY, "google": cls.FORCE_SECONDARY}
        if value in aliases:
            return aliases[value]
        return cls(value)


# ---------------------------------------------------------------------------
# Capture events
# ---------------------------------------------------------------------------


@dataclass
class CaptionEvent:
    """Caption text observed by a capture adapter.

    Attributes:
        text: Raw caption text (not yet normalised).
        source_node: Opaque handle of the cue or DOM node that produced it.
        timestamp_ms: Engine clock time when the event was observed.
    """

    source: ClassVar[CaptureSource]

    text: str
    source_node: Any = None
    timestamp_ms: float = 0.0


@dataclass
class StructuredCaptionEvent(CaptionEvent):
    """Cue text from a native timed-text track."""

    source: ClassVar[CaptureSource] = CaptureSource.STRUCTURED


@dataclass
class ObservedCaptionEvent(CaptionEvent):
    """Text from a caption-like DOM node; may be a fragment."""

    source: ClassVar[CaptureSource] = CaptureSource.OBSERVED


# ---------------------------------------------------------------------------
# Lines and tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DisplayedLine:
    """The line currently shown on the overlay.

    RULES:
    - At most one DisplayedLine is current (held by the session state)
    - line_id increases by one for every accepted line
    """

    text: str
    first_shown_at_ms: float
    line_id: int


@dataclass(eq=False)
class Token:
    """One interactive word of a rendered line.

    Attributes:
        text: The word as displayed, punctuation included.
        key: Case-folded, punctuation-stripped lookup key ("" for pure punctuation).
        index: Position of the word in the line.
        is_unknown: Whether ``key`` is in the learner's unknown-word set.
    """

    text: str
    key: str
    index: int
    is_unknown: bool = False


@dataclass
class RenderedLine:
    """What the presentation sink draws: word tokens plus an optional translation."""

    line_id: int
    tokens: List[Token]
    translated_text: Optional[str] = None
    provider: Optional[ProviderKind] = None
    error: Optional[str] = None

    @property
    def text(self) -> str:
        return " ".join(token.text for token in self.tokens)


# ---------------------------------------------------------------------------
# Translation results
# ---------------------------------------------------------------------------


@dataclass
class TranslationResult:
    """Outcome of one orchestrated translation.

    RULES:
    - On terminal failure translated_text is the original input text,
      provider is ERROR and error carries the underlying message
    - request_id is unique per orchestrator and increases monotonically
    """

    translated_text: str
    provider: ProviderKind
    source_text: str
    request_id: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.provider is ProviderKind.ERROR


# ---------------------------------------------------------------------------
# Selection state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SelectedWord:
    """A clicked word and the token it came from."""

    word: str
    token: Token


@dataclass(frozen=True)
class EmptySelection:
    """Nothing selected."""

    def contains(self, token: Token) -> bool:
        return False


@dataclass(frozen=True)
class SingleSelection:
    """One word selected by a plain click."""

    item: SelectedWord

    def contains(self, token: Token) -> bool:
        return self.item.token is token


@dataclass(frozen=True)
class AccumulatingSelection:
    """Words collected by modifier-clicks, in click order."""

    items: Tuple[SelectedWord, ...] = field(default_factory=tuple)

    def contains(self, token: Token) -> bool:
        return any(item.token is token for item in self.items)

    @property
    def phrase(self) -> str:
        return " ".join(item.word for item in self.items)

    @property
    def last_token(self) -> Optional[Token]:
        return self.items[-1].token if self.items else None


SelectionState = Union[EmptySelection, SingleSelection, AccumulatingSelection]
