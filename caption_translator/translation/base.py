"""Abstract translation provider and the shared HTTP plumbing.

WHY: The orchestrator swaps between a generative and a bulk provider
behind one call shape: ``translate(text, target_language, glossary)``
returning text or raising ProviderError. Both real providers talk HTTP
with a hard time bound, so the timeout and error mapping live here once.

HOW: TranslationProvider is an ABC with a ``kind`` and an async
``translate()``. HTTPTranslationProvider adds ``_send()``: it runs a
request under asyncio.wait_for, using an injected httpx.AsyncClient or a
short-lived one, and maps every failure onto a ProviderError kind.

RULES:
- Exceeding the time bound aborts the request → ProviderError(TIMEOUT)
- Transport errors and invalid URLs → NETWORK; non-2xx → HTTP_STATUS with status and body
- Subclasses map unparseable bodies to MALFORMED_RESPONSE
- An injected client is never closed here; its owner closes it
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import httpx

from caption_translator.core.models import ProviderKind
from caption_translator.errors import ProviderError, ProviderErrorKind

logger = logging.getLogger(__name__)


class TranslationProvider(ABC):
    """One translation backend.

    To add a new backend:
    1. Subclass TranslationProvider (or HTTPTranslationProvider)
    2. Implement ``kind`` and ``translate()``
    3. Raise ProviderError for every failure the orchestrator should fall back on
    """

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        """Provider reported in TranslationResult when this backend succeeds."""

    @abstractmethod
    async def translate(
        self,
        text: str,
        target_language: str,
        glossary: Sequence[str] = (),
    ) -> str:
        """Translate ``text`` into ``target_language``.

        Args:
            text: Non-empty source text.
            target_language: 2-letter target language code.
            glossary: Terms that must come back unaltered.

        Returns:
            The translated text.

        Raises:
            ProviderError: On any failure (network, timeout, status, body).
        """


class HTTPTranslationProvider(TranslationProvider):
    """Provider that reaches its backend over HTTP with a hard time bound."""

    name = "provider"

    def __init__(
        self,
        timeout_s: float,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout_s = timeout_s
        self._http_client = http_client

    async def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send one request and return the decoded JSON body."""
        try:
            response = await asyncio.wait_for(
                self._request(method, url, **kwargs), timeout=self.timeout_s
            )
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                ProviderErrorKind.TIMEOUT,
                "no response within {:g}s".format(self.timeout_s),
                provider=self.name,
            ) from exc
        except httpx.TimeoutException as exc:
            raise ProviderError(
                ProviderErrorKind.TIMEOUT, str(exc) or type(exc).__name__, provider=self.name
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(
                ProviderErrorKind.NETWORK, str(exc) or type(exc).__name__, provider=self.name
            ) from exc
        except httpx.InvalidURL as exc:
            # Not an HTTPError; a misconfigured endpoint must still fall back.
            raise ProviderError(
                ProviderErrorKind.NETWORK, "invalid URL: {}".format(exc), provider=self.name
            ) from exc

        if not response.is_success:
            logger.warning(
                "%s returned HTTP %s: %s", self.name, response.status_code, response.text
            )
            raise ProviderError(
                ProviderErrorKind.HTTP_STATUS,
                response.text,
                provider=self.name,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                ProviderErrorKind.MALFORMED_RESPONSE, "response is not JSON", provider=self.name
            ) from exc

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(method, url, **kwargs)
        async with httpx.AsyncClient() as client:
            return await client.request(method, url, **kwargs)

    def _malformed(self, data: Any) -> ProviderError:
        logger.warning("Invalid %s response structure: %r", self.name, data)
        return ProviderError(
            ProviderErrorKind.MALFORMED_RESPONSE,
            "invalid response from {}".format(self.name),
            provider=self.name,
        )
