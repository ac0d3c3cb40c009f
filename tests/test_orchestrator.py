"""Tests for the translation orchestrator's strategy and failure policy.

WHY: The orchestrator is where "never block the caption" and "never
silently downgrade a forced provider" meet. Each strategy, and the single
fallback hop, is pinned down here.

RULES:
- translate() never raises
- Terminal failure → original text, provider ERROR, error message
- Exactly one fallback hop, only under auto
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from caption_translator.core.models import ProviderKind, ProviderStrategy
from caption_translator.errors import MissingCredentialError, ProviderError
from caption_translator.settings import Settings
from caption_translator.translation.gemini import GeminiProvider
from caption_translator.translation.google import GoogleTranslateProvider
from caption_translator.translation.orchestrator import build_orchestrator
from conftest import FakeProvider, make_orchestrator, provider_error


def translate(orchestrator, text="Hello", lang="tr"):
    return asyncio.run(orchestrator.translate(text, lang))


class TestAutoStrategy:
    def test_without_key_uses_secondary(self, secondary, primary):
        orchestrator = make_orchestrator(secondary, primary)
        result = translate(orchestrator)
        assert result.provider is ProviderKind.SECONDARY_BULK
        assert result.translated_text == "gt:Hello"
        assert primary.calls == []

    def test_with_key_uses_primary(self, secondary, primary):
        orchestrator = make_orchestrator(secondary, primary, api_key="k")
        result = translate(orchestrator)
        assert result.provider is ProviderKind.PRIMARY_AI
        assert secondary.calls == []

    def test_primary_failure_falls_back_once(self, secondary):
        failing = FakeProvider(ProviderKind.PRIMARY_AI, error=provider_error())
        orchestrator = make_orchestrator(secondary, failing, api_key="k")
        result = translate(orchestrator)
        assert result.provider is ProviderKind.SECONDARY_BULK
        assert result.error is None
        assert len(failing.calls) == 1
        assert len(secondary.calls) == 1

    def test_invalid_primary_url_falls_back(self, secondary):
        def handler(request):
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                orchestrator = make_orchestrator(
                    secondary, GeminiProvider("k", http_client=client), api_key="k"
                )
                return await orchestrator.translate("Hello", "tr")

        result = asyncio.run(run())
        assert result.provider is ProviderKind.SECONDARY_BULK
        assert result.translated_text == "gt:Hello"

    def test_both_failing_reports_error_with_original_text(self):
        failing_primary = FakeProvider(ProviderKind.PRIMARY_AI, error=provider_error())
        failing_secondary = FakeProvider(ProviderKind.SECONDARY_BULK, error=provider_error())
        orchestrator = make_orchestrator(failing_secondary, failing_primary, api_key="k")
        result = translate(orchestrator, "Hello")
        assert result.failed
        assert result.translated_text == "Hello"
        assert "boom" in result.error
        assert len(failing_secondary.calls) == 1


class TestForcedStrategies:
    def test_force_secondary_ignores_key(self, secondary, primary):
        orchestrator = make_orchestrator(
            secondary, primary, api_key="k", strategy=ProviderStrategy.FORCE_SECONDARY
        )
        assert translate(orchestrator).provider is ProviderKind.SECONDARY_BULK
        assert primary.calls == []

    def test_force_secondary_failure_is_error(self):
        failing = FakeProvider(ProviderKind.SECONDARY_BULK, error=provider_error())
        orchestrator = make_orchestrator(failing, strategy=ProviderStrategy.FORCE_SECONDARY)
        assert translate(orchestrator).provider is ProviderKind.ERROR

    def test_force_primary_without_key_makes_no_call(self, secondary, primary):
        orchestrator = make_orchestrator(
            secondary, primary, strategy=ProviderStrategy.FORCE_PRIMARY
        )
        result = translate(orchestrator)
        assert result.provider is ProviderKind.ERROR
        assert "API key is missing" in result.error
        assert primary.calls == []
        assert secondary.calls == []
        assert orchestrator.factory_calls == []

    def test_force_primary_failure_does_not_fall_back(self, secondary):
        failing = FakeProvider(ProviderKind.PRIMARY_AI, error=provider_error())
        orchestrator = make_orchestrator(
            secondary, failing, api_key="k", strategy=ProviderStrategy.FORCE_PRIMARY
        )
        assert translate(orchestrator).provider is ProviderKind.ERROR
        assert secondary.calls == []

    def test_translate_strict_raises(self, secondary):
        orchestrator = make_orchestrator(secondary, strategy=ProviderStrategy.FORCE_PRIMARY)
        with pytest.raises(MissingCredentialError):
            asyncio.run(orchestrator.translate_strict("Hello", "tr"))

    def test_translate_strict_raises_provider_error(self):
        failing = FakeProvider(ProviderKind.SECONDARY_BULK, error=provider_error())
        orchestrator = make_orchestrator(failing)
        with pytest.raises(ProviderError):
            asyncio.run(orchestrator.translate_strict("Hello", "tr"))


class TestResults:
    def test_empty_text_is_provider_none(self, secondary):
        orchestrator = make_orchestrator(secondary)
        result = translate(orchestrator, "   ")
        assert result.provider is ProviderKind.NONE
        assert result.translated_text == ""
        assert secondary.calls == []

    def test_request_ids_increase(self, secondary):
        orchestrator = make_orchestrator(secondary)
        first = translate(orchestrator, "a")
        second = translate(orchestrator, "b")
        assert second.request_id > first.request_id
        assert second.source_text == "b"

    def test_reserved_request_id_is_used(self, secondary):
        orchestrator = make_orchestrator(secondary)
        reserved = orchestrator.next_request_id()
        result = asyncio.run(orchestrator.translate("Hello", "tr", request_id=reserved))
        assert result.request_id == reserved
        assert translate(orchestrator).request_id > reserved

    def test_glossary_is_passed_to_provider(self, secondary):
        orchestrator = make_orchestrator(secondary, glossary=["Ada"])
        translate(orchestrator)
        assert secondary.calls[0][2] == ["Ada"]


class TestConfigure:
    def test_key_change_rebuilds_primary(self, secondary, primary):
        orchestrator = make_orchestrator(secondary, primary, api_key="one")
        translate(orchestrator)
        orchestrator.configure(api_key="two")
        translate(orchestrator)
        assert [key for key, _model in orchestrator.factory_calls] == ["one", "two"]

    def test_omitted_key_is_kept(self, secondary, primary):
        orchestrator = make_orchestrator(secondary, primary, api_key="one")
        orchestrator.configure(strategy=ProviderStrategy.AUTO)
        assert orchestrator.has_credential

    def test_blank_key_removes_credential(self, secondary, primary):
        orchestrator = make_orchestrator(secondary, primary, api_key="one")
        orchestrator.configure(api_key="  ")
        assert not orchestrator.has_credential
        assert translate(orchestrator).provider is ProviderKind.SECONDARY_BULK

    def test_apply_settings(self, secondary, primary):
        orchestrator = make_orchestrator(secondary, primary)
        orchestrator.apply_settings(
            Settings.from_dict({"translationProvider": "gemini", "geminiApiKey": "k", "glossary": "Ada"})
        )
        assert orchestrator.strategy is ProviderStrategy.FORCE_PRIMARY
        assert orchestrator.glossary == ["Ada"]
        assert translate(orchestrator).provider is ProviderKind.PRIMARY_AI


class TestBuildOrchestrator:
    def test_real_providers(self):
        orchestrator = build_orchestrator(Settings(api_key="k", model="gemini-test"))
        assert isinstance(orchestrator.secondary, GoogleTranslateProvider)
        assert isinstance(orchestrator.primary, GeminiProvider)
        assert orchestrator.primary.model == "gemini-test"
