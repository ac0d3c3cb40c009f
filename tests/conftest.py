"""Shared test fixtures for the caption_translator test suite.

WHY: Engine, selection and orchestrator tests all need deterministic
stand-ins for the network providers and the overlay. Centralising them
keeps each test focused on one ordering or policy rule.

HOW: FakeProvider returns scripted translations (or raises scripted
errors) and records every call. A provider can be "gated" so a test
decides when each call resolves, which is how stale-response races are
reproduced. RecordingSink records every call the engine makes on the
presentation boundary.

RULES:
- No test touches the network
- Async code is driven with asyncio.run() inside plain test functions
- Fake clocks are plain callables returning milliseconds
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from caption_translator.core.models import ProviderKind, RenderedLine, Token
from caption_translator.engine.presentation import PresentationSink
from caption_translator.errors import ProviderError, ProviderErrorKind
from caption_translator.translation.base import TranslationProvider
from caption_translator.translation.orchestrator import TranslationOrchestrator


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class FakeProvider(TranslationProvider):
    """Scripted provider.

    Translates to ``"<prefix>:<text>"`` unless ``error`` is set, in which
    case every call raises it. With ``gated=True`` each call waits until
    release() is called for its text, or for its text and target language
    when two calls share the same text.
    """

    def __init__(
        self,
        kind: ProviderKind,
        prefix: str = "",
        error: Optional[Exception] = None,
        gated: bool = False,
    ) -> None:
        self._kind = kind
        self.prefix = prefix or kind.value
        self.error = error
        self.gated = gated
        self.calls: List[Tuple[str, str, List[str]]] = []
        self._gates: Dict[Any, asyncio.Event] = {}

    @property
    def kind(self) -> ProviderKind:
        return self._kind

    def _gate(self, key: Any) -> asyncio.Event:
        if key not in self._gates:
            self._gates[key] = asyncio.Event()
        return self._gates[key]

    def release(self, text: str, target_language: Optional[str] = None) -> None:
        self._gate(text if target_language is None else (text, target_language)).set()

    async def _wait_for_release(self, text: str, target_language: str) -> None:
        waiters = [
            asyncio.ensure_future(self._gate(text).wait()),
            asyncio.ensure_future(self._gate((text, target_language)).wait()),
        ]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

    async def translate(self, text: str, target_language: str, glossary: Sequence[str] = ()) -> str:
        self.calls.append((text, target_language, list(glossary)))
        if self.gated:
            await self._wait_for_release(text, target_language)
        if self.error is not None:
            raise self.error
        return "{}:{}".format(self.prefix, text)


def provider_error(kind: ProviderErrorKind = ProviderErrorKind.NETWORK) -> ProviderError:
    return ProviderError(kind, "boom", provider="fake")


@pytest.fixture
def secondary():
    return FakeProvider(ProviderKind.SECONDARY_BULK, prefix="gt")


@pytest.fixture
def primary():
    return FakeProvider(ProviderKind.PRIMARY_AI, prefix="ai")


def make_orchestrator(secondary, primary=None, **kwargs) -> TranslationOrchestrator:
    """Orchestrator whose primary factory always returns ``primary``."""
    built: List[Any] = []

    def factory(key, model):
        built.append((key, model))
        return primary or FakeProvider(ProviderKind.PRIMARY_AI, prefix="ai")

    orchestrator = TranslationOrchestrator(secondary, primary_factory=factory, **kwargs)
    orchestrator.factory_calls = built
    return orchestrator


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------


class RecordingSink(PresentationSink):
    """Record everything the engine asks the overlay to do."""

    def __init__(self) -> None:
        self.rendered: List[RenderedLine] = []
        self.tooltips: List[Tuple[Token, str]] = []
        self.cleared = 0
        self.tooltip_hidden = 0
        self.pending: List[Tuple[Token, bool]] = []
        self.selected: Dict[int, Optional[str]] = {}
        self.restyled: List[Tuple[Token, bool]] = []

    def render(self, line: RenderedLine) -> None:
        self.rendered.append(line)

    def clear(self) -> None:
        self.cleared += 1

    def show_tooltip(self, token: Token, text: str) -> None:
        self.tooltips.append((token, text))

    def hide_tooltip(self) -> None:
        self.tooltip_hidden += 1

    def set_pending(self, token: Token, pending: bool) -> None:
        self.pending.append((token, pending))

    def set_selected(self, token: Token, mode: Optional[str]) -> None:
        self.selected[id(token)] = mode

    def restyle(self, token: Token, is_unknown: bool) -> None:
        self.restyled.append((token, is_unknown))

    @property
    def last(self) -> RenderedLine:
        return self.rendered[-1]

    def selection_of(self, token: Token) -> Optional[str]:
        return self.selected.get(id(token))


@pytest.fixture
def sink():
    return RecordingSink()


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock(1000.0)
