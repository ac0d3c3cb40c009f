"""In-memory host: timed-text tracks and node trees without a browser.

WHY: The CLI replays caption files through the full engine, and tests
need to drive both capture paths deterministically. Both want a host
that satisfies the capture protocols with plain Python objects.

HOW: MemoryTrack fires its cue listeners from show_cue(). MemoryNode is a
minimal element/text node; mutating helpers (append, set_text) report
MutationRecords to a MemoryWatcher, which delivers them to every watched
root that contains the changed node.

RULES:
- Delivery is synchronous, one record per call
- A node belongs to a watched root if the root is reached by walking
  parent links without crossing into an isolated sub-tree boundary
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional

from caption_translator.capture.host import (
    CHARACTER_DATA,
    CHILD_LIST,
    ELEMENT_NODE,
    TEXT_NODE,
    MutationRecord,
)

# ---------------------------------------------------------------------------
# Timed-text tracks
# ---------------------------------------------------------------------------


class MemoryCue:
    def __init__(self, text: str) -> None:
        self.text = text


class MemoryTrack:
    """A caption track whose active cue is set by hand."""

    def __init__(self, kind: str = "subtitles", mode: str = "showing") -> None:
        self.kind = kind
        self.mode = mode
        self._active: List[MemoryCue] = []
        self._listeners: List[Callable[[], None]] = []

    @property
    def active_cues(self) -> List[MemoryCue]:
        return list(self._active)

    def add_cue_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def show_cue(self, text: Optional[str]) -> None:
        """Make ``text`` the only active cue (None clears) and fire listeners."""
        self._active = [MemoryCue(text)] if text is not None else []
        for listener in list(self._listeners):
            listener()


class MemoryTrackList:
    def __init__(self, tracks: Optional[List[MemoryTrack]] = None) -> None:
        self._tracks: List[MemoryTrack] = list(tracks or [])
        self._listeners: List[Callable[[MemoryTrack], None]] = []

    def __iter__(self) -> Iterator[MemoryTrack]:
        return iter(list(self._tracks))

    def add_track_listener(self, callback: Callable[[MemoryTrack], None]) -> None:
        self._listeners.append(callback)

    def add_track(self, track: MemoryTrack) -> None:
        self._tracks.append(track)
        for listener in list(self._listeners):
            listener(track)


# ---------------------------------------------------------------------------
# Node trees
# ---------------------------------------------------------------------------


class MemoryNode:
    """Element or text node.

    Elements may carry an isolated sub-tree (``shadow``), whose root's
    parent is the host element.
    """

    def __init__(
        self,
        node_type: str = ELEMENT_NODE,
        class_name: str = "",
        text: str = "",
        watcher: Optional["MemoryWatcher"] = None,
    ) -> None:
        self.node_type = node_type
        self.class_name = class_name
        self._text = text
        self.parent: Optional[MemoryNode] = None
        self.hidden = False
        self.shadow: Optional[MemoryNode] = None
        self._children: List[MemoryNode] = []
        self._watcher = watcher

    @classmethod
    def element(cls, class_name: str = "", watcher: Optional["MemoryWatcher"] = None) -> "MemoryNode":
        return cls(ELEMENT_NODE, class_name=class_name, watcher=watcher)

    @classmethod
    def text_node(cls, text: str, watcher: Optional["MemoryWatcher"] = None) -> "MemoryNode":
        return cls(TEXT_NODE, text=text, watcher=watcher)

    @property
    def text(self) -> str:
        """Own text for text nodes; concatenated descendant text for elements."""
        if self.node_type == TEXT_NODE:
            return self._text
        parts = []
        stack = list(reversed(self._children))
        while stack:
            node = stack.pop()
            if node.node_type == TEXT_NODE:
                parts.append(node._text)
            else:
                stack.extend(reversed(node._children))
        return "".join(parts)

    def children(self) -> List["MemoryNode"]:
        return list(self._children)

    def isolated_root(self) -> Optional["MemoryNode"]:
        return self.shadow

    def hide(self) -> None:
        self.hidden = True

    def attach_shadow(self, root: "MemoryNode") -> "MemoryNode":
        root.parent = self
        root._watcher = root._watcher or self._watcher
        self.shadow = root
        return root

    def append(self, child: "MemoryNode") -> "MemoryNode":
        child.parent = self
        child._watcher = child._watcher or self._watcher
        self._children.append(child)
        if self._watcher is not None:
            self._watcher.notify(MutationRecord(kind=CHILD_LIST, target=self, added_nodes=[child]))
        return child

    def set_text(self, text: str) -> None:
        self._text = text
        if self._watcher is not None:
            self._watcher.notify(MutationRecord(kind=CHARACTER_DATA, target=self))


class _Handle:
    def __init__(self, watcher: "MemoryWatcher", key: int) -> None:
        self._watcher = watcher
        self._key = key

    def disconnect(self) -> None:
        self._watcher.subscriptions.pop(self._key, None)


class MemoryWatcher:
    """Deliver MutationRecords to the watched roots that contain the target."""

    def __init__(self) -> None:
        self.subscriptions: Dict[int, tuple] = {}
        self._next_key = 0

    def watch(self, root: MemoryNode, callback: Callable[[List[MutationRecord]], None]) -> _Handle:
        self._next_key += 1
        self.subscriptions[self._next_key] = (root, callback)
        return _Handle(self, self._next_key)

    def notify(self, record: MutationRecord) -> None:
        for root, callback in list(self.subscriptions.values()):
            if _contains(root, record.target):
                callback([record])


def _contains(root: MemoryNode, node: Optional[MemoryNode]) -> bool:
    while node is not None:
        if node is root:
            return True
        # Watching a tree does not reach into its isolated sub-trees.
        if node.parent is not None and node.parent.shadow is node:
            return False
        node = node.parent
    return False
