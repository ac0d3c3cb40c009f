"""FastAPI application exposing the translation orchestrator.

WHY: The capture engine runs inside a host page, but the same
translation policy (strategy, fallback, glossary protection, failure
reporting) is useful to other tools. It follows the shape of a
background message handler: text in, translated text plus provider out.

HOW: create_app() builds the app. The lifespan hook opens one shared
httpx.AsyncClient and an orchestrator configured from the environment;
both live on app.state. Requests that override the strategy or glossary
get a short-lived orchestrator sharing the same client, so concurrent
requests never mutate shared configuration.

RULES:
- Empty or whitespace-only text → 400
- Unknown strategy → 400
- Provider failures are reported in the body (provider "error"), not as 5xx
- The shared client is closed on shutdown unless it was injected
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException, Request

from caption_translator import __version__
from caption_translator.config import LANGUAGE_NAMES, LOG_FORMAT
from caption_translator.core.models import ProviderStrategy
from caption_translator.server.models import (
    ErrorResponse,
    HealthResponse,
    LanguageInfo,
    LanguagesResponse,
    TranslateRequest,
    TranslateResponse,
)
from caption_translator.settings import Settings
from caption_translator.translation.glossary import parse_glossary
from caption_translator.translation.orchestrator import (
    TranslationOrchestrator,
    build_orchestrator,
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Build the API app.

    Args:
        settings: Base configuration; defaults to Settings.from_env() at startup.
        http_client: Shared client for the providers. When given it is not
            closed on shutdown (tests inject one backed by MockTransport).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        base = settings or Settings.from_env()
        client = http_client or httpx.AsyncClient()
        app.state.settings = base
        app.state.http_client = client
        app.state.orchestrator = build_orchestrator(base, http_client=client)
        logger.info(
            "Translation API ready (strategy=%s, credential=%s)",
            base.provider_strategy.value,
            "yes" if base.has_credential else "no",
        )
        yield
        if http_client is None:
            await client.aclose()

    app = FastAPI(
        lifespan=lifespan,
        title="Caption Translator API",
        description=(
            "Translate caption lines, phrases and words with a generative "
            "primary provider and a bulk fallback provider, keeping "
            "glossary terms untranslated."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    @app.post(
        "/translate",
        response_model=TranslateResponse,
        tags=["translation"],
        summary="Translate one text",
        description=(
            "Runs the configured provider strategy. Provider failures are "
            "reported with provider 'error' and the original text."
        ),
        responses={400: {"model": ErrorResponse, "description": "Empty text or unknown strategy"}},
    )
    async def translate(body: TranslateRequest, request: Request) -> TranslateResponse:
        if not body.text.strip():
            raise HTTPException(status_code=400, detail="Text must not be empty")

        orchestrator = _orchestrator_for(request, body)
        result = await orchestrator.translate(body.text, body.target_language)
        return TranslateResponse(
            translated_text=result.translated_text,
            provider=result.provider.value,
            error=result.error,
        )

    @app.get(
        "/languages",
        response_model=LanguagesResponse,
        tags=["translation"],
        summary="List target languages",
        description="Language codes with a known English name for prompts.",
    )
    async def list_languages() -> LanguagesResponse:
        return LanguagesResponse(
            languages=[
                LanguageInfo(code=code, name=name)
                for code, name in sorted(LANGUAGE_NAMES.items())
            ]
        )

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
        summary="Health check",
        description="Liveness check for load balancers.",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    return app


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _orchestrator_for(request: Request, body: TranslateRequest) -> TranslationOrchestrator:
    """Shared orchestrator, or a per-request one when the body overrides it."""
    if body.strategy is None and body.glossary is None:
        return request.app.state.orchestrator

    base: Settings = request.app.state.settings
    changes = {}
    if body.strategy is not None:
        try:
            changes["provider_strategy"] = ProviderStrategy.parse(body.strategy)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail="Unknown strategy '{}'. Available: {}".format(
                    body.strategy, ", ".join(s.value for s in ProviderStrategy)
                ),
            )
    if body.glossary is not None:
        changes["glossary"] = parse_glossary(body.glossary)
    return build_orchestrator(replace(base, **changes), http_client=request.app.state.http_client)


app = create_app()


def run_api(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Entry point for the caption-translator-api console script."""
    import uvicorn
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    uvicorn.run(app, host=host, port=port)
