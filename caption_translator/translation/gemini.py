"""Primary (generative) provider backed by the Gemini generateContent API.

WHY: A generative model translates conversational captions more
naturally than a statistical service and can be told, in plain words,
which glossary terms to leave alone.

HOW: Builds a one-shot prompt ("Translate the following text to
{Language}. Only return the translated text, nothing else:"), appends
the glossary instruction, POSTs it to models/{model}:generateContent and
reads candidates[0].content.parts[0].text.

RULES:
- Requires an API key (sent as the ``key`` query parameter)
- Time bound: PRIMARY_TIMEOUT_S (10 s)
- Empty or missing candidate text → ProviderError(MALFORMED_RESPONSE)
- The returned text is stripped
"""

from __future__ import annotations

from typing import Optional, Sequence

import httpx

from caption_translator.config import (
    GEMINI_BASE_URL,
    PRIMARY_TIMEOUT_S,
    language_name,
    normalize_model,
)
from caption_translator.core.models import ProviderKind
from caption_translator.translation.base import HTTPTranslationProvider
from caption_translator.translation.glossary import glossary_instruction


def build_prompt(text: str, target_language: str, glossary: Sequence[str] = ()) -> str:
    """Build the translation prompt sent to the generative model."""
    prompt = (
        "Translate the following text to {}. "
        "Only return the translated text, nothing else:".format(language_name(target_language))
    )
    instruction = glossary_instruction(glossary)
    if instruction:
        prompt = "{} {}".format(prompt, instruction)
    return "{}\n\n{}".format(prompt, text)


class GeminiProvider(HTTPTranslationProvider):
    """Gemini generateContent translation."""

    name = "Gemini"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = PRIMARY_TIMEOUT_S,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s, http_client=http_client)
        self._api_key = api_key
        self.model = normalize_model(model)
        self._base_url = (base_url or GEMINI_BASE_URL).rstrip("/")

    @property
    def kind(self) -> ProviderKind:
        return ProviderKind.PRIMARY_AI

    @property
    def endpoint(self) -> str:
        return "{}/models/{}:generateContent".format(self._base_url, self.model)

    async def translate(
        self,
        text: str,
        target_language: str,
        glossary: Sequence[str] = (),
    ) -> str:
        body = {
            "contents": [
                {"parts": [{"text": build_prompt(text, target_language, glossary)}]}
            ]
        }
        data = await self._send(
            "POST",
            self.endpoint,
            params={"key": self._api_key},
            json=body,
        )

        try:
            translated = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise self._malformed(data) from exc
        if not isinstance(translated, str) or not translated.strip():
            raise self._malformed(data)
        return translated.strip()
