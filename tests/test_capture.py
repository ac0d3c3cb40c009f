"""Tests for the structured and observed capture adapters.

WHY: The adapters are the only code that touches host objects. They must
emit exactly the caption text (and nothing else), hide what they capture,
reach into isolated sub-trees, and never pick up the engine's own overlay.

HOW: The in-memory host (tracks, nodes and a mutation watcher) drives
both adapters synchronously.
"""

from __future__ import annotations

import pytest

from caption_translator.capture.memory import (
    MemoryNode,
    MemoryTrack,
    MemoryTrackList,
    MemoryWatcher,
)
from caption_translator.capture.observed import ObservedCaptionAdapter, iter_tree
from caption_translator.capture.structured import (
    StructuredCaptionAdapter,
    select_caption_track,
)
from caption_translator.config import OVERLAY_CLASS
from caption_translator.core.models import CaptureSource
from caption_translator.errors import CaptureUnavailableError


# ---------------------------------------------------------------------------
# Structured
# ---------------------------------------------------------------------------


class TestSelectCaptionTrack:
    def test_first_subtitles_or_captions_track(self):
        chapters = MemoryTrack(kind="chapters")
        captions = MemoryTrack(kind="captions")
        assert select_caption_track(MemoryTrackList([chapters, captions])) is captions

    def test_no_track_list(self):
        with pytest.raises(CaptureUnavailableError):
            select_caption_track(None)

    def test_no_qualifying_track(self):
        with pytest.raises(CaptureUnavailableError):
            select_caption_track(MemoryTrackList([MemoryTrack(kind="metadata")]))


class TestStructuredAdapter:
    def test_attach_hides_track_and_emits_cues(self, clock):
        events = []
        track = MemoryTrack()
        adapter = StructuredCaptionAdapter(events.append, clock=clock)
        assert adapter.attach(MemoryTrackList([track]))
        assert track.mode == "hidden"

        track.show_cue("Hello there")
        assert [e.text for e in events] == ["Hello there"]
        assert events[0].source is CaptureSource.STRUCTURED
        assert events[0].timestamp_ms == clock()

    def test_blank_and_empty_cues_are_ignored(self):
        events = []
        track = MemoryTrack()
        adapter = StructuredCaptionAdapter(events.append)
        adapter.attach(MemoryTrackList([track]))
        track.show_cue("   ")
        track.show_cue(None)
        assert events == []

    def test_attach_without_track_returns_false(self):
        adapter = StructuredCaptionAdapter(lambda e: None)
        assert not adapter.attach(MemoryTrackList([]))
        assert not adapter.active

    def test_late_track_is_wired(self):
        events = []
        tracks = MemoryTrackList([MemoryTrack()])
        adapter = StructuredCaptionAdapter(events.append)
        adapter.attach(tracks)
        late = MemoryTrack(kind="captions")
        tracks.add_track(late)
        assert late.mode == "hidden"
        late.show_cue("late cue")
        assert [e.text for e in events] == ["late cue"]

    def test_detach_silences_events(self):
        events = []
        track = MemoryTrack()
        adapter = StructuredCaptionAdapter(events.append)
        adapter.attach(MemoryTrackList([track]))
        adapter.detach()
        track.show_cue("ignored")
        assert events == []


# ---------------------------------------------------------------------------
# Observed
# ---------------------------------------------------------------------------


@pytest.fixture
def watcher():
    return MemoryWatcher()


@pytest.fixture
def page(watcher):
    return MemoryNode.element("page", watcher=watcher)


def observed(watcher, events):
    return ObservedCaptionAdapter(watcher, events.append)


class TestObservedAdapter:
    def test_existing_caption_is_scanned_on_start(self, watcher, page):
        events = []
        box = page.append(MemoryNode.element("vjs-text-track-display"))
        box.append(MemoryNode.text_node("  Hello  "))
        observed(watcher, events).start(page)
        assert "Hello" in [e.text for e in events]
        assert box.hidden
        assert all(e.source is CaptureSource.OBSERVED for e in events)

    def test_added_caption_node_emits(self, watcher, page):
        events = []
        adapter = observed(watcher, events)
        adapter.start(page)
        box = page.append(MemoryNode.element("player-subtitle-line"))
        box.append(MemoryNode.text_node("Fragment one"))
        assert "Fragment one" in [e.text for e in events]

    def test_text_change_emits(self, watcher, page):
        events = []
        box = page.append(MemoryNode.element("cue"))
        text = box.append(MemoryNode.text_node(""))
        observed(watcher, events).start(page)
        assert box.hidden
        assert events == []
        text.set_text("Now speaking")
        assert [e.text for e in events] == ["Now speaking"]

    def test_non_caption_nodes_are_ignored(self, watcher, page):
        events = []
        observed(watcher, events).start(page)
        div = page.append(MemoryNode.element("controls"))
        div.append(MemoryNode.text_node("Play"))
        assert events == []
        assert not div.hidden

    def test_own_overlay_is_never_captured(self, watcher, page):
        events = []
        observed(watcher, events).start(page)
        overlay = page.append(MemoryNode.element(OVERLAY_CLASS + " subtitle"))
        overlay.append(MemoryNode.text_node("Translated line"))
        assert events == []
        assert not overlay.hidden

    def test_isolated_subtree_is_watched(self, watcher, page):
        events = []
        host = page.append(MemoryNode.element("player"))
        shadow = host.attach_shadow(MemoryNode.element("shadow-root"))
        adapter = observed(watcher, events)
        adapter.start(page)

        box = shadow.append(MemoryNode.element("playkit-subtitles"))
        box.append(MemoryNode.text_node("Inside shadow"))
        assert "Inside shadow" in [e.text for e in events]

    def test_each_isolated_root_watched_once(self, watcher, page):
        host = page.append(MemoryNode.element("player"))
        host.attach_shadow(MemoryNode.element("shadow-root"))
        adapter = observed(watcher, [])
        adapter.start(page)
        adapter.scan()
        assert len(watcher.subscriptions) == 2

    def test_stop_disconnects(self, watcher, page):
        events = []
        adapter = observed(watcher, events)
        adapter.start(page)
        adapter.stop()
        assert not adapter.running
        page.append(MemoryNode.element("caption")).append(MemoryNode.text_node("late"))
        assert events == []


class TestIterTree:
    def test_document_order_and_isolated_roots(self):
        root = MemoryNode.element("root")
        a = root.append(MemoryNode.element("a"))
        b = root.append(MemoryNode.element("b"))
        shadow = a.attach_shadow(MemoryNode.element("shadow"))
        names = [node.class_name for node in iter_tree(root)]
        assert names.index("a") < names.index("b")
        assert "shadow" in names
        assert shadow in list(iter_tree(root))
        assert b in list(iter_tree(root))

    def test_deep_tree_does_not_recurse(self):
        root = node = MemoryNode.element("root")
        for _ in range(5000):
            node = node.append(MemoryNode.element("x"))
        assert sum(1 for _ in iter_tree(root)) == 5001
