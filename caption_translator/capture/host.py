"""Host capture boundary: the shapes the adapters need from a host page.

WHY: The engine runs against whatever hosts the video: a browser bridge,
a headless DOM, or synthetic trees in tests. The adapters only need a
small capability surface, so it is declared here as Protocols and the
host supplies objects that satisfy them.

HOW: Two groups of protocols:
  TextTrackList/TextTrack/TextCue — native timed-text track API
  HostNode/MutationRecord/MutationWatcher — generic subtree watching,
    including nested isolated sub-trees (shadow roots) via isolated_root()

RULES:
- node_type is "element" or "text"
- class_name is the element's class string ("" for text nodes)
- hide() sets visibility hidden; the node stays laid out
- MutationWatcher.watch() returns a handle whose disconnect() stops delivery
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence

ELEMENT_NODE = "element"
TEXT_NODE = "text"

CHILD_LIST = "childList"
CHARACTER_DATA = "characterData"


# ---------------------------------------------------------------------------
# Timed-text tracks
# ---------------------------------------------------------------------------


class TextCue(Protocol):
    text: str


class TextTrack(Protocol):
    kind: str
    mode: str

    @property
    def active_cues(self) -> Sequence[TextCue]: ...

    def add_cue_listener(self, callback: Callable[[], None]) -> None: ...


class TextTrackList(Protocol):
    def __iter__(self) -> Iterator[TextTrack]: ...

    def add_track_listener(self, callback: Callable[[TextTrack], None]) -> None: ...


# ---------------------------------------------------------------------------
# Observed subtrees
# ---------------------------------------------------------------------------


class HostNode(Protocol):
    node_type: str
    class_name: str
    text: str
    parent: Optional["HostNode"]

    def children(self) -> Iterable["HostNode"]: ...

    def isolated_root(self) -> Optional["HostNode"]: ...

    def hide(self) -> None: ...


@dataclass
class MutationRecord:
    """One observed change under a watched root."""

    kind: str
    target: HostNode
    added_nodes: List[HostNode] = field(default_factory=list)


class WatchHandle(Protocol):
    def disconnect(self) -> None: ...


class MutationWatcher(Protocol):
    def watch(
        self,
        root: HostNode,
        callback: Callable[[List[MutationRecord]], None],
    ) -> WatchHandle: ...
