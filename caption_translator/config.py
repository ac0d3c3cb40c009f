"""Configuration constants, language names, and .env loading.

WHY: Provider endpoints, engine timings and prompt language names are
tuned by hand and differ between deployments. Keeping them as plain
module data in one place makes them easy to find and override.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values, each endpoint/default overridable via an
environment variable. load_api_key() returns the optional Gemini key.

RULES:
- LANGUAGE_NAMES maps ISO 639-1 codes to English names used in prompts
- Unknown codes fall back to the code itself
- Timeouts are seconds; primary 10 s, secondary 5 s
- The API key is optional: without it the engine uses the bulk provider
- API key is loaded from .env via python-dotenv, never hardcoded
"""

from __future__ import annotations

import os
from typing import Dict, Optional

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# ---------------------------------------------------------------------------
# Language names (prompt wording for the generative provider)
# ---------------------------------------------------------------------------

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "tr": "Turkish",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
}


def language_name(code: str) -> str:
    """Return the English name for a 2-letter language code.

    Falls back to the code itself, so prompts still read
    "Translate ... to xx" for languages missing from the table.
    """
    return LANGUAGE_NAMES.get(code, code)


# ---------------------------------------------------------------------------
# Provider endpoints
# ---------------------------------------------------------------------------

GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash-001")
GOOGLE_TRANSLATE_URL = os.getenv(
    "GOOGLE_TRANSLATE_URL", "https://translate.googleapis.com/translate_a/single"
)

# Model names that were renamed upstream; stored settings may still use them.
_LEGACY_MODELS: Dict[str, str] = {
    "gemini-1.5-flash": "gemini-1.5-flash-001",
}


def normalize_model(model: Optional[str]) -> str:
    """Map a stored model name to a currently valid one."""
    if not model:
        return GEMINI_MODEL
    return _LEGACY_MODELS.get(model, model)


# ---------------------------------------------------------------------------
# Defaults for the settings collaborator
# ---------------------------------------------------------------------------

DEFAULT_TARGET_LANGUAGE = os.getenv("DEFAULT_TARGET_LANGUAGE", "tr")
DEFAULT_PROVIDER_STRATEGY = os.getenv("DEFAULT_PROVIDER_STRATEGY", "auto")
DEFAULT_FONT_FAMILY = "Segoe UI"
DEFAULT_FONT_SIZE = 18
DEFAULT_TRANSLATED_FONT_SIZE = 14

# ---------------------------------------------------------------------------
# Engine timings (seconds)
# ---------------------------------------------------------------------------

PRIMARY_TIMEOUT_S = 10.0
SECONDARY_TIMEOUT_S = 5.0
SETTLE_DELAY_S = 0.4
HOVER_DELAY_S = 0.3
DEFAULT_CONTINUATION_THRESHOLD_S = 5.0
STRUCTURED_RETRY_ATTEMPTS = 10
STRUCTURED_RETRY_INTERVAL_S = 2.0
STARTUP_DELAY_S = 1.0

# Class marker of the engine's own overlay; never treated as a caption node.
OVERLAY_CLASS = "caption-translator-overlay"


def load_api_key() -> Optional[str]:
    """Load the Gemini API key from the environment.

    WHY: The generative provider needs a credential, but the engine works
    without one (bulk provider only), so a missing key is not an error here.

    HOW: Reads GEMINI_API_KEY from os.environ (populated by python-dotenv).

    RULES:
    - Returns None if the key is missing or blank
    - Surrounding whitespace is stripped
    """
    key = os.getenv("GEMINI_API_KEY", "").strip()
    return key or None
