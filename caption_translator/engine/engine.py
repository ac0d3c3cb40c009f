"""Caption engine: wires capture, settling, translation and presentation.

WHY: The pieces of the pipeline are each simple; the hard part is their
interleaving. Two capture sources must never both drive the display, a
settled duplicate must not trigger a second translation, and a slow
translation must never overwrite the line that replaced it. The engine
owns the session state and enforces those orderings in one place.

HOW: Data flow per line:
  StructuredCaptionAdapter ───────────────┐
  ObservedCaptionAdapter → FragmentBuffer ┴→ ContinuationMerger
      → SessionState.apply_new_line → sink.render (caption first)
      → TranslationOrchestrator → stale guard → sink.render (with translation)
Startup tries the structured adapter first; without it the observed
adapter runs and the structured adapter is retried a bounded number of
times. settings_changed() re-applies configuration without restarting
capture.

RULES:
- Structured activation is permanent; observed output is then ignored
- A settled text equal to the current line is a no-op
- The caption is rendered before its translation is requested
- A translation for a line that is no longer current is dropped, and so
  is one overtaken by a newer request for the same line
- A new line cancels any pending hover lookup on the old tokens
- Disabled translation clears the overlay and the current line
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from caption_translator.capture.host import HostNode, MutationWatcher, TextTrackList
from caption_translator.capture.observed import ObservedCaptionAdapter
from caption_translator.capture.structured import StructuredCaptionAdapter
from caption_translator.config import (
    HOVER_DELAY_S,
    SETTLE_DELAY_S,
    STARTUP_DELAY_S,
    STRUCTURED_RETRY_ATTEMPTS,
    STRUCTURED_RETRY_INTERVAL_S,
)
from caption_translator.core.fragments import FragmentBuffer
from caption_translator.core.merger import ContinuationMerger, ContinuationPolicy
from caption_translator.core.models import (
    CaptureSource,
    DisplayedLine,
    ObservedCaptionEvent,
    RenderedLine,
    StructuredCaptionEvent,
    TranslationResult,
)
from caption_translator.core.text import normalize_caption
from caption_translator.core.timers import monotonic_ms
from caption_translator.engine.presentation import PresentationSink
from caption_translator.engine.selection import SelectionModel
from caption_translator.engine.session import SessionState
from caption_translator.errors import StaleResponseError
from caption_translator.settings import Settings
from caption_translator.translation.orchestrator import TranslationOrchestrator

logger = logging.getLogger(__name__)

TrackListSource = Callable[[], Optional[TextTrackList]]


class CaptionEngine:
    """One capture session over one host page.

    Args:
        settings: Initial configuration snapshot.
        orchestrator: Translation orchestrator (configured from ``settings``).
        sink: Presentation sink that draws the overlay.
        watcher: Host mutation watcher for the observed fallback; None
            disables the fallback.
        clock: Millisecond clock used for continuation timing.
        persist: Optional hook called with storage-shaped updates when the
            learner changes unknown words or the glossary.
    """

    def __init__(
        self,
        settings: Settings,
        orchestrator: TranslationOrchestrator,
        sink: PresentationSink,
        watcher: Optional[MutationWatcher] = None,
        clock: Callable[[], float] = monotonic_ms,
        settle_delay_s: float = SETTLE_DELAY_S,
        hover_delay_s: float = HOVER_DELAY_S,
        retry_attempts: int = STRUCTURED_RETRY_ATTEMPTS,
        retry_interval_s: float = STRUCTURED_RETRY_INTERVAL_S,
        persist: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> None:
        self.settings = settings
        self.orchestrator = orchestrator
        self.orchestrator.apply_settings(settings)
        self.sink = sink
        self._clock = clock
        self.retry_attempts = retry_attempts
        self.retry_interval_s = retry_interval_s

        self.session = SessionState(
            unknown_words=settings.unknown_words,
            glossary=settings.glossary,
        )
        self.merger = ContinuationMerger(
            ContinuationPolicy.from_seconds(settings.continuation_threshold_s)
        )
        self.buffer = FragmentBuffer(
            on_settled=self._on_observed_settled,
            settle_delay_s=settle_delay_s,
            is_superseded=lambda: self.session.structured_active,
        )
        self.selection = SelectionModel(
            self.session,
            orchestrator,
            sink,
            target_language=lambda: self.settings.target_language,
            hover_delay_s=hover_delay_s,
            on_glossary_changed=self._on_glossary_changed,
            persist=self._save,
        )
        self.structured = StructuredCaptionAdapter(self.handle_structured_event, clock=clock)
        self.observed: Optional[ObservedCaptionAdapter] = None
        if watcher is not None:
            self.observed = ObservedCaptionAdapter(
                watcher, self.handle_observed_event, clock=clock
            )

        self._persist = persist
        self._track_source: Optional[TrackListSource] = None
        self._retry_task: Optional[asyncio.Task] = None
        self._tasks: set = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(
        self,
        track_source: Optional[TrackListSource] = None,
        root: Optional[HostNode] = None,
    ) -> Optional[CaptureSource]:
        """Start capture; returns the source that is live afterwards.

        Tries the structured adapter first. Otherwise the observed adapter
        starts on ``root`` and the structured adapter is retried in the
        background every ``retry_interval_s`` up to ``retry_attempts`` times.
        Returns None when neither adapter could start (no track yet and no
        watcher or root for the fallback); a pending retry may still attach
        the structured adapter later. Must be called from inside a running
        event loop when a retry may be needed.
        """
        self._track_source = track_source
        if self._try_structured():
            logger.info("Using text track API")
            return CaptureSource.STRUCTURED

        if self.observed is not None and root is not None:
            logger.info("Text track not available yet, using DOM observer")
            self.session.activate_source(CaptureSource.OBSERVED)
            self.observed.start(root)
        if track_source is not None and self.retry_attempts > 0:
            self._retry_task = asyncio.ensure_future(self._retry_structured())
        return self.session.source

    async def launch(
        self,
        track_source: Optional[TrackListSource] = None,
        root: Optional[HostNode] = None,
        delay_s: float = STARTUP_DELAY_S,
    ) -> Optional[CaptureSource]:
        """Wait for the host player to initialise, then start()."""
        if delay_s > 0:
            await asyncio.sleep(delay_s)
        return self.start(track_source, root)

    def stop(self) -> None:
        if self._retry_task is not None:
            self._retry_task.cancel()
            self._retry_task = None
        self.buffer.clear()
        self.selection.cancel()
        self.structured.detach()
        if self.observed is not None:
            self.observed.stop()

    async def wait_idle(self) -> None:
        """Wait for in-flight line translations (used by the CLI and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _try_structured(self) -> bool:
        if self._track_source is None:
            return False
        if not self.structured.attach(self._track_source()):
            return False
        self.session.activate_source(CaptureSource.STRUCTURED)
        self.buffer.clear()
        return True

    async def _retry_structured(self) -> None:
        for attempt in range(1, self.retry_attempts + 1):
            await asyncio.sleep(self.retry_interval_s)
            if self.session.structured_active:
                return
            if self._try_structured():
                logger.info("Text track API now available (attempt %d), switching", attempt)
                return
        logger.info("Text track not available, continuing with DOM observer")

    # ------------------------------------------------------------------
    # Capture events
    # ------------------------------------------------------------------

    def handle_structured_event(self, event: StructuredCaptionEvent) -> None:
        if not self.session.activate_source(CaptureSource.STRUCTURED):
            return
        self._spawn(self.display(event.text))

    def handle_observed_event(self, event: ObservedCaptionEvent) -> None:
        if self.session.structured_active or not self.settings.enabled:
            return
        self.buffer.add(event.text)

    async def _on_observed_settled(self, text: str) -> None:
        await self.display(text)

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            exc = task.exception()
            logger.error("Caption task failed", exc_info=(type(exc), exc, exc.__traceback__))

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    async def display(self, text: str) -> Optional[DisplayedLine]:
        """Merge settled text into the display and translate it.

        Returns:
            The new DisplayedLine, or None when nothing changed.
        """
        if not self.settings.enabled:
            return None
        settled = normalize_caption(text)
        decision = self.merger.merge(
            settled, self.session.line, self._clock(), previous=self.session.last_line
        )
        if decision is None:
            return None

        line = self.session.apply_new_line(decision.text, self._clock())
        logger.info("Subtitle%s: %s", " continuation" if decision.continued else "", line.text)
        self.selection.cancel()
        self.sink.hide_tooltip()
        self._render(line)
        if self.settings.show_translated_line:
            await self._translate_line(line)
        return line

    async def _translate_line(self, line: DisplayedLine) -> Optional[TranslationResult]:
        request_id = self.orchestrator.next_request_id()
        self.session.begin_translation(request_id)
        result = await self.orchestrator.translate(
            line.text, self.settings.target_language, request_id=request_id
        )
        try:
            self._check_current(line, result.request_id)
        except StaleResponseError as exc:
            logger.debug("%s; dropped", exc)
            return None
        self._render(line, result)
        return result

    def _check_current(self, line: DisplayedLine, request_id: int) -> None:
        if not self.session.is_latest(line.line_id, request_id):
            raise StaleResponseError(line.line_id, self.session.current_line_id, request_id)

    def _render(self, line: DisplayedLine, result: Optional[TranslationResult] = None) -> None:
        rendered = RenderedLine(line_id=line.line_id, tokens=self.session.tokens)
        if result is not None and result.translated_text:
            rendered.translated_text = result.translated_text
            rendered.provider = result.provider
            rendered.error = result.error
        self.sink.render(rendered)

    async def retranslate_current_line(self) -> Optional[TranslationResult]:
        """Re-render the current line, translated if the translated line is shown."""
        line = self.session.line
        if line is None or not self.settings.enabled:
            return None
        if not self.settings.show_translated_line:
            self._render(line)
            return None
        return await self._translate_line(line)

    async def _on_glossary_changed(self) -> None:
        if self.session.line is not None and self.settings.show_translated_line:
            await self.retranslate_current_line()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def settings_changed(self, update: Dict[str, Any]) -> Settings:
        """Apply a "settings changed" notification without restarting capture."""
        self.settings = self.settings.merged(update)
        self.orchestrator.apply_settings(self.settings)
        self.merger.policy.threshold_ms = ContinuationPolicy.from_seconds(
            self.settings.continuation_threshold_s
        ).threshold_ms
        if "unknownWords" in update:
            self.session.set_unknown_words(self.settings.unknown_words)
        if "glossary" in update:
            self.session.glossary = list(self.settings.glossary)

        if not self.settings.enabled:
            self.buffer.clear()
            self.selection.cancel()
            self.session.clear_line()
            self.sink.clear()
            return self.settings

        if self.session.line is not None:
            await self.retranslate_current_line()
        elif self.observed is not None and self.observed.running:
            logger.info("No current subtitle tracked; scanning for subtitles")
            self.observed.scan()
        return self.settings

    def _save(self, update: Dict[str, Any]) -> None:
        """Keep the snapshot in step with learner edits, then persist them."""
        self.settings = self.settings.merged(update)
        if self._persist is not None:
            self._persist(update)

    async def unknown_words_changed(self, words) -> None:
        """Apply an external unknown-word list and refresh the current line."""
        self.settings = self.settings.merged({"unknownWords": list(words)})
        self.session.set_unknown_words(self.settings.unknown_words)
        await self.retranslate_current_line()
