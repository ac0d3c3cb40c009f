"""Pydantic request/response models for the HTTP API.

WHY: Tools outside the capture engine (a browser extension background
page, curl, scripts) ask for one translation at a time, the same request
a background message handler would serve. Typed models give request
validation and OpenAPI docs for free.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- provider values match ProviderKind exactly
- strategy accepts the ProviderStrategy values plus "gemini" / "google"
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from caption_translator.config import DEFAULT_TARGET_LANGUAGE


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class TranslateRequest(BaseModel):
    """One text to translate."""

    text: str = Field(description="Caption text, word or phrase to translate.")
    target_language: str = Field(
        default=DEFAULT_TARGET_LANGUAGE,
        description="Target language ISO 639-1 code (e.g. 'tr', 'en').",
    )
    strategy: Optional[str] = Field(
        default=None,
        description=(
            "Provider strategy: auto, force-primary or force-secondary. "
            "Defaults to the server configuration."
        ),
    )
    glossary: Optional[List[str]] = Field(
        default=None,
        description="Terms to keep untranslated for this request.",
    )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TranslateResponse(BaseModel):
    """Outcome of one orchestrated translation.

    RULES:
    - On failure translated_text is the input text and provider is "error"
    """

    translated_text: str = Field(description="Translated text (the input on failure).")
    provider: str = Field(
        description="Provider that produced the result: primary-ai, secondary-bulk, none or error."
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message, only present when provider is 'error'.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "translated_text": "Merhaba dünya",
                "provider": "secondary-bulk",
                "error": None,
            }
        ]
    }}


class LanguageInfo(BaseModel):
    """A supported target language."""

    code: str = Field(description="ISO 639-1 code.")
    name: str = Field(description="English language name used in prompts.")


class LanguagesResponse(BaseModel):
    """Languages with a known display name."""

    languages: List[LanguageInfo] = Field(description="Supported target languages.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status ('ok' when healthy).")
    version: str = Field(description="API version string.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")
