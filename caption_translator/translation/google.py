"""Secondary (bulk) provider backed by the public Google Translate endpoint.

WHY: Needs no credential and answers fast, so it is both the default
when no API key is configured and the fallback when the generative
provider fails.

HOW: GET translate_a/single with ``client=gtx, sl=auto, tl, dt=t, q``.
The response is a nested array; data[0] holds one [translated, source,
...] entry per sentence. Glossary terms are swapped for numeric
placeholders before the call and restored afterwards.

RULES:
- Time bound: SECONDARY_TIMEOUT_S (5 s)
- Sentence segments are concatenated in order
- No segments / wrong shape → ProviderError(MALFORMED_RESPONSE)
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx

from caption_translator.config import GOOGLE_TRANSLATE_URL, SECONDARY_TIMEOUT_S
from caption_translator.core.models import ProviderKind
from caption_translator.translation.base import HTTPTranslationProvider
from caption_translator.translation.glossary import protect_terms, restore_terms


class GoogleTranslateProvider(HTTPTranslationProvider):
    """Keyless Google Translate."""

    name = "Google Translate"

    def __init__(
        self,
        url: Optional[str] = None,
        timeout_s: float = SECONDARY_TIMEOUT_S,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s, http_client=http_client)
        self.url = url or GOOGLE_TRANSLATE_URL

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.SECONDARY_BULK

    async def translate(
        self,
        text: str,
        target_language: str,
        glossary: Sequence[str] = (),
    ) -> str:
        protected, placeholders = protect_terms(text, glossary)
        data = await self._send(
            "GET",
            self.url,
            params={
                "client": "gtx",
                "sl": "auto",
                "tl": target_language,
                "dt": "t",
                "q": protected,
            },
        )
        translated = self._extract(data)
        return restore_terms(translated, placeholders)

    def _extract(self, data: Any) -> str:
        try:
            segments = data[0]
            parts = [segment[0] for segment in segments if segment and segment[0]]
        except (IndexError, KeyError, TypeError) as exc:
            raise self._malformed(data) from exc
        if not parts or not all(isinstance(part, str) for part in parts):
            raise self._malformed(data)
        return "".join(parts)
