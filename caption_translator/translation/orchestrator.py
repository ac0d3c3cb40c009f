"""Translation orchestrator: provider strategy, fallback, and failure policy.

WHY: Caption translation must be resilient. A primary-provider outage
must never surface as a user-visible error while the bulk provider is
reachable, yet a user who explicitly forces the primary provider
without a key must be told so, not silently downgraded. And no failure
may ever block the caption itself from being displayed.

HOW: translate_strict() applies the strategy and raises on terminal
failure; translate() wraps it and turns any terminal failure into a
TranslationResult carrying the original text and provider ERROR.
  force-secondary → secondary
  force-primary   → MissingCredentialError without a key, else primary
  auto            → primary if a key exists, secondary on any ProviderError;
                    secondary directly without a key

RULES:
- Exactly one level of fallback (primary → secondary); no retries
- MissingCredentialError is raised before any network call
- Every call gets a new request_id; results carry it with the source text
- Glossary is passed to both providers (prompt vs placeholder protection)
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

import httpx

from caption_translator.core.models import ProviderKind, ProviderStrategy, TranslationResult
from caption_translator.errors import MissingCredentialError, ProviderError
from caption_translator.translation.base import TranslationProvider
from caption_translator.translation.gemini import GeminiProvider
from caption_translator.translation.google import GoogleTranslateProvider

if TYPE_CHECKING:
    from caption_translator.settings import Settings

logger = logging.getLogger(__name__)

PrimaryFactory = Callable[[str, Optional[str]], TranslationProvider]

_UNSET: Any = object()


class TranslationOrchestrator:
    """Apply the provider strategy to one text at a time.

    Args:
        secondary: The bulk provider (always available).
        primary_factory: Builds the primary provider from (api_key, model).
            Called lazily whenever the credential or model changes.
        strategy: Initial provider strategy.
        api_key: Initial credential; None or blank means "no credential".
        model: Generative model name passed to the factory.
        glossary: Ordered protected terms.
    """

    def __init__(
        self,
        secondary: TranslationProvider,
        primary_factory: Optional[PrimaryFactory] = None,
        strategy: ProviderStrategy = ProviderStrategy.AUTO,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        glossary: Sequence[str] = (),
    ) -> None:
        self.secondary = secondary
        self._primary_factory = primary_factory or (
            lambda key, model_name: GeminiProvider(key, model=model_name)
        )
        self._primary: Optional[TranslationProvider] = None
        self._request_ids = itertools.count(1)
        self.strategy = strategy
        self.api_key: Optional[str] = None
        self.model = model
        self.glossary: List[str] = []
        self.configure(strategy=strategy, api_key=api_key, model=model, glossary=glossary)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(
        self,
        strategy: Optional[ProviderStrategy] = None,
        api_key: Optional[str] = _UNSET,
        model: Optional[str] = None,
        glossary: Optional[Sequence[str]] = None,
    ) -> None:
        """Re-apply configuration; a changed key or model rebuilds the primary.

        Arguments left out keep their current value. Passing ``api_key=None``
        removes the credential.
        """
        if strategy is not None:
            self.strategy = strategy
        if glossary is not None:
            self.glossary = list(glossary)

        if api_key is _UNSET:
            key = self.api_key
        else:
            key = (api_key or "").strip() or None
        if key != self.api_key or (model is not None and model != self.model):
            self._primary = None
        self.api_key = key
        if model is not None:
            self.model = model

    def apply_settings(self, settings: "Settings") -> None:
        self.configure(
            strategy=settings.provider_strategy,
            api_key=settings.api_key,
            model=settings.model,
            glossary=settings.glossary,
        )

    @property
    def has_credential(self) -> bool:
        return self.api_key is not None

    @property
    def primary(self) -> TranslationProvider:
        if self.api_key is None:
            raise MissingCredentialError("Gemini API key is missing")
        if self._primary is None:
            self._primary = self._primary_factory(self.api_key, self.model)
        return self._primary

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def next_request_id(self) -> int:
        """Reserve a request id so a caller can tag a call before it starts."""
        return next(self._request_ids)

    async def translate(
        self,
        text: str,
        target_language: str,
        request_id: Optional[int] = None,
    ) -> TranslationResult:
        """Translate ``text``; never raises.

        Args:
            request_id: Id reserved with next_request_id(); a new one is
                issued when omitted.

        Returns:
            TranslationResult. On terminal failure the translated text is the
            original input, provider is ERROR and ``error`` holds the message.
            Empty input resolves to an empty result with provider NONE.
        """
        if request_id is None:
            request_id = self.next_request_id()
        if not text or not text.strip():
            return TranslationResult(
                translated_text="",
                provider=ProviderKind.NONE,
                source_text=text,
                request_id=request_id,
            )

        try:
            translated, provider = await self._run_strategy(text, target_language)
        except (ProviderError, MissingCredentialError) as exc:
            logger.error("Translation error: %s", exc)
            return TranslationResult(
                translated_text=text,
                provider=ProviderKind.ERROR,
                source_text=text,
                request_id=request_id,
                error=str(exc),
            )

        return TranslationResult(
            translated_text=translated,
            provider=provider,
            source_text=text,
            request_id=request_id,
        )

    async def translate_strict(self, text: str, target_language: str) -> TranslationResult:
        """Like translate(), but raises ProviderError / MissingCredentialError."""
        request_id = next(self._request_ids)
        translated, provider = await self._run_strategy(text, target_language)
        return TranslationResult(
            translated_text=translated,
            provider=provider,
            source_text=text,
            request_id=request_id,
        )

    async def _run_strategy(self, text: str, target_language: str):
        if self.strategy is ProviderStrategy.FORCE_SECONDARY:
            logger.debug("Using %s (forced)", self.secondary.kind.value)
            return await self._call(self.secondary, text, target_language)

        if self.strategy is ProviderStrategy.FORCE_PRIMARY:
            # Raises MissingCredentialError before any network call.
            primary = self.primary
            logger.debug("Using %s (forced)", primary.kind.value)
            return await self._call(primary, text, target_language)

        if not self.has_credential:
            logger.debug("No API key configured; using %s", self.secondary.kind.value)
            return await self._call(self.secondary, text, target_language)

        try:
            return await self._call(self.primary, text, target_language)
        except ProviderError as exc:
            logger.warning("Primary provider failed, falling back: %s", exc)
            return await self._call(self.secondary, text, target_language)

    async def _call(self, provider: TranslationProvider, text: str, target_language: str):
        translated = await provider.translate(text, target_language, self.glossary)
        return translated, provider.kind


def build_orchestrator(
    settings: "Settings",
    http_client: Optional[httpx.AsyncClient] = None,
) -> TranslationOrchestrator:
    """Create an orchestrator with the real providers for a settings snapshot."""
    return TranslationOrchestrator(
        secondary=GoogleTranslateProvider(http_client=http_client),
        primary_factory=lambda key, model: GeminiProvider(
            key, model=model, http_client=http_client
        ),
        strategy=settings.provider_strategy,
        api_key=settings.api_key,
        model=settings.model,
        glossary=settings.glossary,
    )
