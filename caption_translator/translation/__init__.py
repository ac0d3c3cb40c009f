"""Translation package: provider boundary, glossary protection, orchestration.

WHY: Captions and word lookups are translated through two swappable
backends with different strengths. This package hides the HTTP details
and the fallback policy behind one call:
``await orchestrator.translate(text, target_language)``.

HOW: base.py defines the provider contract, gemini.py and google.py the
two implementations (httpx.AsyncClient under a hard time bound),
glossary.py the term protection, orchestrator.py the strategy.

RULES:
- All provider HTTP calls go through HTTPTranslationProvider._send()
- Providers raise ProviderError; only the orchestrator decides on fallback
- The orchestrator never raises from translate()
"""

from caption_translator.translation.base import TranslationProvider
from caption_translator.translation.gemini import GeminiProvider
from caption_translator.translation.google import GoogleTranslateProvider
from caption_translator.translation.orchestrator import (
    TranslationOrchestrator,
    build_orchestrator,
)

__all__ = [
    "GeminiProvider",
    "GoogleTranslateProvider",
    "TranslationOrchestrator",
    "TranslationProvider",
    "build_orchestrator",
]
