"""Structured capture: subscribe to a native timed-text track.

WHY: When the player exposes its captions as a native text track, each
cue arrives whole and on time, without DOM scraping or fragments. This is
the preferred source whenever it exists.

HOW: attach() picks the first track whose kind is "subtitles" or
"captions", switches it to "hidden" (the host stops drawing it but keeps
firing cue changes) and listens for cue changes. Tracks added later
(lazy-loaded manifests) get the same treatment.

RULES:
- attach() returns False (never raises) when no qualifying track exists
- Only the first active cue of a cue change is emitted
- Blank cue text is ignored
- Events are StructuredCaptionEvent with the cue as source_node
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from caption_translator.capture.host import TextTrack, TextTrackList
from caption_translator.core.models import StructuredCaptionEvent
from caption_translator.core.timers import monotonic_ms
from caption_translator.errors import CaptureUnavailableError

logger = logging.getLogger(__name__)

CAPTION_TRACK_KINDS = frozenset({"subtitles", "captions"})


def select_caption_track(track_list: Optional[TextTrackList]) -> TextTrack:
    """Return the first subtitles/captions track.

    Raises:
        CaptureUnavailableError: If there is no track list or no qualifying track.
    """
    if track_list is None:
        raise CaptureUnavailableError("no text track list available")
    for track in track_list:
        if track.kind in CAPTION_TRACK_KINDS:
            return track
    raise CaptureUnavailableError("no subtitles or captions track")


class StructuredCaptionAdapter:
    """Turn cue changes of a native caption track into caption events."""

    def __init__(
        self,
        on_event: Callable[[StructuredCaptionEvent], None],
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self._on_event = on_event
        self._clock = clock
        self.track: Optional[TextTrack] = None
        self.active = False

    def attach(self, track_list: Optional[TextTrackList]) -> bool:
        """Subscribe to the first caption track; False when none qualifies."""
        if self.active:
            return True
        try:
            track = select_caption_track(track_list)
        except CaptureUnavailableError as exc:
            logger.debug("Structured capture unavailable: %s", exc)
            return False

        self._wire(track)
        track_list.add_track_listener(self._on_track_added)
        self.track = track
        self.active = True
        logger.info("Text track observer active (kind=%s)", track.kind)
        return True

    def detach(self) -> None:
        """Stop emitting events; host listeners stay registered but go quiet."""
        self.active = False

    def _wire(self, track: TextTrack) -> None:
        track.mode = "hidden"
        track.add_cue_listener(lambda: self._on_cue_change(track))

    def _on_track_added(self, track: TextTrack) -> None:
        if track.kind in CAPTION_TRACK_KINDS:
            logger.debug("Late caption track added (kind=%s)", track.kind)
            self._wire(track)

    def _on_cue_change(self, track: TextTrack) -> None:
        if not self.active:
            return
        cues = track.active_cues
        if not cues:
            return
        cue = cues[0]
        text = cue.text or ""
        if not text.strip():
            return
        self._on_event(
            StructuredCaptionEvent(text=text, source_node=cue, timestamp_ms=self._clock())
        )
