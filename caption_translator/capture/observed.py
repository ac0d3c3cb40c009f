"""Observed capture: watch the page tree for caption-like nodes.

WHY: Many players draw captions straight into the DOM (often inside
shadow roots) with no usable text track. As a fallback the engine
watches every mutation, recognises caption nodes by their class
markers, hides them, and forwards their text.

HOW: start() watches the root, then walks the tree with an explicit
worklist to watch every isolated sub-tree, and scans existing nodes.
Each mutation batch: added element nodes get their isolated sub-trees
watched and are checked themselves; childList/characterData targets are
checked. A text node qualifies through its parent element's class.

RULES:
- Caption markers are substring matches on the class string
- The engine's own overlay (OVERLAY_CLASS) never qualifies
- A qualifying node is hidden even when its text is blank
- Only non-blank text is emitted, stripped, as ObservedCaptionEvent
- Each isolated root is watched at most once
- Traversal uses a worklist, never recursion
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from caption_translator.capture.host import (
    CHARACTER_DATA,
    CHILD_LIST,
    ELEMENT_NODE,
    TEXT_NODE,
    HostNode,
    MutationRecord,
    MutationWatcher,
    WatchHandle,
)
from caption_translator.config import OVERLAY_CLASS
from caption_translator.core.models import ObservedCaptionEvent
from caption_translator.core.timers import monotonic_ms

logger = logging.getLogger(__name__)

CAPTION_MARKERS: Tuple[str, ...] = (
    "caption",
    "subtitle",
    "track",
    "cue",
    "playkit-text-track",
    "playkit-subtitle",
    "playkit-captions",
)


def iter_tree(root: HostNode) -> Iterable[HostNode]:
    """Yield ``root`` and every descendant, entering isolated sub-trees."""
    stack: List[HostNode] = [root]
    while stack:
        node = stack.pop()
        yield node
        isolated = node.isolated_root()
        children = list(node.children())
        # Reverse so children come out in document order.
        stack.extend(reversed(children))
        if isolated is not None:
            stack.append(isolated)


class ObservedCaptionAdapter:
    """Detect caption nodes through tree mutations."""

    def __init__(
        self,
        watcher: MutationWatcher,
        on_event: Callable[[ObservedCaptionEvent], None],
        clock: Callable[[], float] = monotonic_ms,
        markers: Sequence[str] = CAPTION_MARKERS,
        overlay_class: str = OVERLAY_CLASS,
    ) -> None:
        self._watcher = watcher
        self._on_event = on_event
        self._clock = clock
        self.markers = tuple(markers)
        self.overlay_class = overlay_class
        self._handles: Dict[int, Tuple[HostNode, WatchHandle]] = {}
        self.root: Optional[HostNode] = None

    @property
    def running(self) -> bool:
        return bool(self._handles)

    def start(self, root: HostNode) -> None:
        self.root = root
        self._watch(root)
        self.scan(root)
        logger.info("DOM caption observer active (%d watched roots)", len(self._handles))

    def stop(self) -> None:
        for _node, handle in self._handles.values():
            handle.disconnect()
        self._handles.clear()

    def scan(self, node: Optional[HostNode] = None) -> None:
        """Check every node under ``node`` and watch its isolated sub-trees."""
        node = node or self.root
        if node is None:
            return
        for current in iter_tree(node):
            isolated = current.isolated_root()
            if isolated is not None:
                self._watch(isolated)
            self.check_node(current)

    def handle_mutations(self, records: List[MutationRecord]) -> None:
        for record in records:
            for added in record.added_nodes:
                if added.node_type == ELEMENT_NODE:
                    self._watch_isolated_roots(added)
                    self.check_node(added)
            if record.kind in (CHILD_LIST, CHARACTER_DATA):
                self.check_node(record.target)

    def is_caption_class(self, class_name: str) -> bool:
        if not class_name or self.overlay_class in class_name:
            return False
        return any(marker in class_name for marker in self.markers)

    def check_node(self, node: HostNode) -> bool:
        """Hide and emit a caption node; returns True if the node qualified."""
        if node.node_type == ELEMENT_NODE:
            owner = node
        elif node.node_type == TEXT_NODE and node.parent is not None:
            owner = node.parent
        else:
            return False
        if owner.node_type != ELEMENT_NODE or not self.is_caption_class(owner.class_name):
            return False

        owner.hide()
        text = (node.text or "").strip()
        if text:
            self._on_event(
                ObservedCaptionEvent(text=text, source_node=node, timestamp_ms=self._clock())
            )
        return True

    def _watch_isolated_roots(self, node: HostNode) -> None:
        for current in iter_tree(node):
            isolated = current.isolated_root()
            if isolated is not None:
                self._watch(isolated)

    def _watch(self, root: HostNode) -> None:
        if id(root) in self._handles:
            return
        handle = self._watcher.watch(root, self.handle_mutations)
        self._handles[id(root)] = (root, handle)
