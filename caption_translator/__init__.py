"""Caption Translator: live caption capture, merge, and translation engine.

WHY: Video players render captions in fragments, from two unreliable
sources (a native timed-text track or plain DOM nodes). Learners want
each spoken line shown once, translated on demand, with every word
clickable for a quick lookup. This package holds the engine that turns
the raw caption stream into coherent, translated, interactive lines.

HOW: Four stages: capture (structured track or observed DOM adapter),
settle (fragment buffer + continuation merger), translate (orchestrator
over a generative primary and a bulk secondary provider), present
(pluggable sink plus the interactive selection model). Each stage is
independently testable.

RULES:
- Only one capture source drives the merger at any time
- Translation failure never blocks caption display
- A translation result for a superseded line is dropped, never rendered
"""

__version__ = "0.1.0"
