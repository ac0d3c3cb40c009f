"""Capture adapters: turn host caption sources into CaptionEvents.

WHY: Captions reach the engine through one of two mutually exclusive,
unreliable sources. Adapters normalise each host-specific shape (track
cues, DOM mutations) into the CaptionEvent tagged union at the boundary
so the rest of the engine never touches host objects.

HOW: host.py declares the capability Protocols, structured.py wraps the
native text-track API, observed.py watches the page tree, memory.py is
an in-process host for replays and tests.

RULES:
- Adapters are thin: no buffering, merging or translation here
- Host objects only appear as opaque source_node handles in events
"""

from caption_translator.capture.memory import MemoryNode, MemoryTrack, MemoryTrackList, MemoryWatcher
from caption_translator.capture.observed import CAPTION_MARKERS, ObservedCaptionAdapter
from caption_translator.capture.structured import StructuredCaptionAdapter

__all__ = [
    "CAPTION_MARKERS",
    "MemoryNode",
    "MemoryTrack",
    "MemoryTrackList",
    "MemoryWatcher",
    "ObservedCaptionAdapter",
    "StructuredCaptionAdapter",
]
