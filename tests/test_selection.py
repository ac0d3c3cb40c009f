"""Tests for the interactive selection model.

WHY: Word lookups race with new clicks, hover moves and new lines. A
tooltip must only ever appear for the selection (or hover) that asked
for it, and right-click must restyle every copy of a word.

HOW: A SessionState with a rendered line, a fake orchestrator and a
recording sink. Gated providers decide when lookups resolve.
"""

from __future__ import annotations

import asyncio

import pytest

from caption_translator.core.models import (
    AccumulatingSelection,
    EmptySelection,
    ProviderKind,
    SingleSelection,
)
from caption_translator.engine.presentation import SELECTED_MULTI, SELECTED_SINGLE
from caption_translator.engine.selection import SelectionModel, toggle_accumulated
from caption_translator.engine.session import SessionState
from conftest import FakeProvider, make_orchestrator, provider_error

HOVER = 0.01


@pytest.fixture
def session():
    session = SessionState(unknown_words=["hello"])
    session.apply_new_line("Hello, big world. Hello!", now_ms=0)
    return session


def model_for(session, sink, secondary, persist=None, on_glossary_changed=None):
    orchestrator = make_orchestrator(secondary)
    model = SelectionModel(
        session,
        orchestrator,
        sink,
        target_language=lambda: "tr",
        hover_delay_s=HOVER,
        persist=persist,
        on_glossary_changed=on_glossary_changed,
    )
    return model, orchestrator


class TestClick:
    def test_plain_click_translates_clean_word(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        token = session.tokens[0]
        result = asyncio.run(model.click(token))
        assert secondary.calls[0][0] == "Hello"
        assert result.translated_text == "gt:Hello"
        assert sink.tooltips == [(token, "gt:Hello")]
        assert isinstance(session.selection, SingleSelection)
        assert sink.selection_of(token) == SELECTED_SINGLE

    def test_click_marks_token_pending_during_lookup(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        token = session.tokens[1]
        asyncio.run(model.click(token))
        assert sink.pending == [(token, True), (token, False)]

    def test_plain_click_never_uses_cache(self, session, sink, secondary):
        session.cache_translation("hello", "cached")
        model, _ = model_for(session, sink, secondary)
        asyncio.run(model.click(session.tokens[0]))
        assert len(secondary.calls) == 1

    def test_new_click_replaces_single_selection(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        first, second = session.tokens[0], session.tokens[1]

        async def run():
            await model.click(first)
            await model.click(second)

        asyncio.run(run())
        assert sink.selection_of(first) is None
        assert sink.selection_of(second) == SELECTED_SINGLE
        assert session.selection.item.token is second

    def test_superseded_lookup_shows_no_tooltip(self, session, sink):
        gated = FakeProvider(ProviderKind.SECONDARY_BULK, prefix="gt", gated=True)
        model, _ = model_for(session, sink, gated)
        first, second = session.tokens[1], session.tokens[2]

        async def run():
            slow = asyncio.ensure_future(model.click(first))
            await asyncio.sleep(0)
            fast = asyncio.ensure_future(model.click(second))
            await asyncio.sleep(0)
            gated.release("world")
            await fast
            gated.release("big")
            await slow

        asyncio.run(run())
        assert [text for _token, text in sink.tooltips] == ["gt:world"]

    def test_failed_lookup_shows_original_text(self, session, sink):
        failing = FakeProvider(ProviderKind.SECONDARY_BULK, error=provider_error())
        model, _ = model_for(session, sink, failing)
        result = asyncio.run(model.click(session.tokens[2]))
        assert result.failed
        assert sink.tooltips[-1][1] == "world"

    def test_punctuation_only_token_is_ignored(self, sink, secondary):
        session = SessionState()
        session.apply_new_line("wait -- what", now_ms=0)
        model, _ = model_for(session, sink, secondary)
        assert asyncio.run(model.click(session.tokens[1])) is None
        assert secondary.calls == []


class TestAccumulate:
    def test_phrase_in_click_order_case_folded(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        big, hello = session.tokens[1], session.tokens[0]

        async def run():
            await model.click(big, accumulate=True)
            await model.click(hello, accumulate=True)

        asyncio.run(run())
        assert secondary.calls[-1][0] == "big hello"
        assert session.selection.phrase == "big hello"
        assert sink.tooltips[-1] == (hello, "gt:big hello")
        assert sink.selection_of(big) == SELECTED_MULTI
        assert sink.selection_of(hello) == SELECTED_MULTI

    def test_clicking_selected_token_removes_it(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        big, world = session.tokens[1], session.tokens[2]

        async def run():
            await model.click(big, accumulate=True)
            await model.click(world, accumulate=True)
            await model.click(world, accumulate=True)

        asyncio.run(run())
        assert session.selection.phrase == "big"
        assert sink.selection_of(world) is None
        assert sink.tooltips[-1] == (big, "gt:big")

    def test_removing_last_word_empties_selection(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        big = session.tokens[1]

        async def run():
            await model.click(big, accumulate=True)
            return await model.click(big, accumulate=True)

        assert asyncio.run(run()) is None
        assert isinstance(session.selection, EmptySelection)
        assert len(secondary.calls) == 1

    def test_accumulate_after_single_starts_fresh(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)

        async def run():
            await model.click(session.tokens[0])
            await model.click(session.tokens[1], accumulate=True)

        asyncio.run(run())
        assert session.selection.phrase == "big"
        assert sink.selection_of(session.tokens[0]) is None

    def test_toggle_accumulated_is_pure(self, session):
        token = session.tokens[1]
        state = toggle_accumulated(EmptySelection(), token, "big")
        assert isinstance(state, AccumulatingSelection)
        assert state.contains(token)
        assert isinstance(toggle_accumulated(state, token, "big"), EmptySelection)


class TestClickOutside:
    def test_clears_selection_and_tooltip(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        asyncio.run(model.click(session.tokens[1], accumulate=True))
        hidden = sink.tooltip_hidden
        model.click_outside()
        assert isinstance(session.selection, EmptySelection)
        assert sink.selection_of(session.tokens[1]) is None
        assert sink.tooltip_hidden == hidden + 1


class TestHover:
    def test_unknown_word_lookup_after_delay_and_cached(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)
        hello = session.tokens[0]

        async def run():
            model.hover_start(hello)
            await asyncio.sleep(HOVER * 3)
            await model.hover_task
            model.hover_end(hello)
            model.hover_start(hello)
            await asyncio.sleep(HOVER * 3)
            await model.hover_task

        asyncio.run(run())
        assert len(secondary.calls) == 1
        assert secondary.calls[0][0] == "hello"
        assert session.cached_translation("hello") == "gt:hello"
        assert [text for _t, text in sink.tooltips] == ["gt:hello", "gt:hello"]

    def test_known_word_does_nothing(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)

        async def run():
            model.hover_start(session.tokens[1])
            await asyncio.sleep(HOVER * 3)

        asyncio.run(run())
        assert secondary.calls == []
        assert not model.hover_pending

    def test_hover_end_before_delay_cancels(self, session, sink, secondary):
        model, _ = model_for(session, sink, secondary)

        async def run():
            model.hover_start(session.tokens[0])
            model.hover_end()
            await asyncio.sleep(HOVER * 3)

        asyncio.run(run())
        assert secondary.calls == []
        assert sink.tooltips == []

    def test_hover_end_during_lookup_suppresses_tooltip_but_caches(self, session, sink):
        gated = FakeProvider(ProviderKind.SECONDARY_BULK, prefix="gt", gated=True)
        model, _ = model_for(session, sink, gated)

        async def run():
            model.hover_start(session.tokens[0])
            await asyncio.sleep(HOVER * 3)
            model.hover_end()
            gated.release("hello")
            await model.hover_task

        asyncio.run(run())
        assert sink.tooltips == []
        assert session.cached_translation("hello") == "gt:hello"

    def test_failed_lookup_is_not_cached(self, session, sink):
        failing = FakeProvider(ProviderKind.SECONDARY_BULK, error=provider_error())
        model, _ = model_for(session, sink, failing)

        async def run():
            model.hover_start(session.tokens[0])
            await asyncio.sleep(HOVER * 3)
            await model.hover_task

        asyncio.run(run())
        assert session.cached_translation("hello") is None


class TestSecondaryClick:
    def test_toggle_unknown_restyles_every_copy(self, session, sink, secondary):
        saved = []
        model, _ = model_for(session, sink, secondary, persist=saved.append)
        big = session.tokens[1]
        assert asyncio.run(model.secondary_click(big)) is True
        assert big.is_unknown
        assert "big" in session.unknown_words
        assert saved[-1] == {"unknownWords": ["big", "hello"]}

        first_hello, last_hello = session.tokens[0], session.tokens[3]
        assert asyncio.run(model.secondary_click(last_hello)) is False
        assert not first_hello.is_unknown
        assert (first_hello, False) in sink.restyled
        assert (last_hello, False) in sink.restyled

    def test_glossary_modifier_toggles_glossary(self, session, sink, secondary):
        saved = []
        refreshed = []

        async def on_change():
            refreshed.append(True)

        model, orchestrator = model_for(
            session, sink, secondary, persist=saved.append, on_glossary_changed=on_change
        )
        world = session.tokens[2]
        assert asyncio.run(model.secondary_click(world, glossary_modifier=True)) is True
        assert session.glossary == ["world"]
        assert orchestrator.glossary == ["world"]
        assert saved[-1] == {"glossary": "world"}
        assert refreshed == [True]
        assert not world.is_unknown

        assert asyncio.run(model.secondary_click(world, glossary_modifier=True)) is False
        assert session.glossary == []
