"""Settings snapshot supplied by the configuration collaborator.

WHY: The engine never owns persisted configuration; it reads a snapshot
(target language, provider strategy, glossary, continuation threshold,
unknown words, fonts) and re-applies a new one whenever a "settings
changed" notification arrives. The storage payload is loosely typed
camelCase JSON, so it is validated once at the boundary.

HOW: Settings is a plain dataclass. from_dict() validates the raw payload
against settings.schema.json with jsonschema, then maps storage keys to
fields. merged() applies a partial update on top of an existing snapshot.
to_storage() is the inverse mapping, used by the persistence hook.

RULES:
- Every storage key is optional; missing keys keep their defaults
- glossary may be a comma-separated string or a list; it is de-duplicated
  case-insensitively in insertion order
- translationProvider accepts the legacy names "gemini" and "google"
- mergeDelay is seconds; None means "use the built-in default"
- Invalid payloads raise InvalidSettingsError (a ValueError)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import jsonschema

from caption_translator.config import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_PROVIDER_STRATEGY,
    DEFAULT_TARGET_LANGUAGE,
    DEFAULT_TRANSLATED_FONT_SIZE,
    load_api_key,
    normalize_model,
)
from caption_translator.core.models import ProviderStrategy
from caption_translator.core.text import word_key
from caption_translator.translation.glossary import parse_glossary

SCHEMA_PATH = Path(__file__).resolve().parent / "settings.schema.json"

_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def _get_schema() -> Dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        with open(SCHEMA_PATH, encoding="utf-8") as f:
            _CACHED_SCHEMA = json.load(f)
    return _CACHED_SCHEMA


class InvalidSettingsError(ValueError):
    """Raised when a settings payload does not match the schema."""


@dataclass
class Settings:
    """Read-only configuration snapshot for one engine session."""

    target_language: str = DEFAULT_TARGET_LANGUAGE
    enabled: bool = True
    show_translated_line: bool = False
    provider_strategy: ProviderStrategy = field(
        default_factory=lambda: ProviderStrategy.parse(DEFAULT_PROVIDER_STRATEGY)
    )
    glossary: List[str] = field(default_factory=list)
    continuation_threshold_s: Optional[float] = None
    unknown_words: Set[str] = field(default_factory=set)
    font_family: str = DEFAULT_FONT_FAMILY
    font_size: float = DEFAULT_FONT_SIZE
    translated_font_family: str = DEFAULT_FONT_FAMILY
    translated_font_size: float = DEFAULT_TRANSLATED_FONT_SIZE
    api_key: Optional[str] = None
    model: str = field(default_factory=lambda: normalize_model(None))

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @classmethod
    def from_env(cls) -> "Settings":
        """Defaults plus the API key from the environment."""
        return cls(api_key=load_api_key())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build a snapshot from a storage payload (see module RULES)."""
        return cls().merged(data)

    def merged(self, update: Dict[str, Any]) -> "Settings":
        """Return a copy of this snapshot with a partial storage update applied.

        Raises:
            InvalidSettingsError: If ``update`` fails schema validation.
        """
        try:
            jsonschema.validate(instance=update, schema=_get_schema())
        except jsonschema.ValidationError as exc:
            raise InvalidSettingsError(
                "Invalid settings: {}".format(exc.message)
            ) from exc

        changes: Dict[str, Any] = {}
        if "targetLang" in update:
            changes["target_language"] = update["targetLang"]
        if "enabled" in update:
            changes["enabled"] = update["enabled"]
        if "showTranslatedSubtitle" in update:
            changes["show_translated_line"] = update["showTranslatedSubtitle"]
        if "translationProvider" in update:
            changes["provider_strategy"] = ProviderStrategy.parse(update["translationProvider"])
        if "glossary" in update:
            changes["glossary"] = parse_glossary(update["glossary"])
        if "mergeDelay" in update:
            delay = update["mergeDelay"]
            changes["continuation_threshold_s"] = None if delay is None else float(delay)
        if "unknownWords" in update:
            changes["unknown_words"] = {
                key for key in (word_key(w) for w in update["unknownWords"]) if key
            }
        if "fontFamily" in update:
            changes["font_family"] = update["fontFamily"]
        if "fontSize" in update:
            changes["font_size"] = update["fontSize"]
        if "translatedFontFamily" in update:
            changes["translated_font_family"] = update["translatedFontFamily"]
        if "translatedFontSize" in update:
            changes["translated_font_size"] = update["translatedFontSize"]
        if "geminiApiKey" in update:
            changes["api_key"] = (update["geminiApiKey"] or "").strip() or None
        if "geminiModel" in update:
            changes["model"] = normalize_model(update["geminiModel"])

        return replace(self, **changes)

    def to_storage(self) -> Dict[str, Any]:
        """Inverse of from_dict(); the API key is never written back."""
        return {
            "targetLang": self.target_language,
            "enabled": self.enabled,
            "showTranslatedSubtitle": self.show_translated_line,
            "translationProvider": self.provider_strategy.value,
            "glossary": ", ".join(self.glossary),
            "mergeDelay": self.continuation_threshold_s,
            "unknownWords": sorted(self.unknown_words),
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "translatedFontFamily": self.translated_font_family,
            "translatedFontSize": self.translated_font_size,
            "geminiModel": self.model,
        }
