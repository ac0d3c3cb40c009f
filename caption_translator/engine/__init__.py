"""Session engine: capture wiring, selection model and presentation sinks."""

from caption_translator.engine.engine import CaptionEngine
from caption_translator.engine.presentation import ConsoleSink, PresentationSink
from caption_translator.engine.selection import SelectionModel
from caption_translator.engine.session import SessionState

__all__ = [
    "CaptionEngine",
    "ConsoleSink",
    "PresentationSink",
    "SelectionModel",
    "SessionState",
]
