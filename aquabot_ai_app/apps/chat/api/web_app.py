# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Elena Viter

# chat/api/web_app.py
"""
FastAPI gateway for AquaBot: chat (one-shot or event stream), photo diagnosis, health.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import anthropic
from dotenv import load_dotenv, find_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aquabot_ai_app.apps.chat.api.sse.chat import create_chat_router, create_health_router, map_error
from aquabot_ai_app.apps.chat.sdk.config import Settings, get_settings
from aquabot_ai_app.apps.chat.sdk.context.aggregator import ContextAggregator
from aquabot_ai_app.apps.chat.sdk.context.pg_source import PgTankDataSource
from aquabot_ai_app.apps.chat.sdk.context.sources import TankDataSource
from aquabot_ai_app.apps.chat.sdk.diagnosis.cycle import PhotoDiagnosisCycle
from aquabot_ai_app.apps.middleware.logging.uvicorn import configure_logging
from aquabot_ai_app.infra.llm.streaming import create_client
from aquabot_ai_app.infra.llm.vision import AnthropicVisionClient, VisionModel
from aquabot_ai_app.infra.service_hub.errors import AquabotError

logger = logging.getLogger(__name__)


def create_app(
        *,
        settings: Optional[Settings] = None,
        source: Optional[TankDataSource] = None,
        anthropic_client: Optional[anthropic.AsyncAnthropic] = None,
        vision: Optional[VisionModel] = None,
) -> FastAPI:
    """
    Anything not passed in is built from settings. A Postgres source is created (and its pool
    opened/closed) by the lifespan only when no source was injected.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    owned_source: Optional[PgTankDataSource] = None
    if source is None:
        owned_source = PgTankDataSource(settings)
        source = owned_source

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"AquaBot gateway starting on port {settings.PORT}")
        if owned_source is not None:
            await owned_source.init()
        yield
        if owned_source is not None:
            await owned_source.close()
        logger.info("AquaBot gateway stopped")

    app = FastAPI(title="AquaBot AI", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    client = anthropic_client or create_client(settings.ANTHROPIC_API_KEY)
    app.state.settings = settings
    app.state.aggregator = ContextAggregator(source,
                                             parameter_limit=settings.CONTEXT_PARAMETER_LIMIT,
                                             maintenance_limit=settings.CONTEXT_MAINTENANCE_LIMIT)
    app.state.anthropic = client
    app.state.diagnosis = PhotoDiagnosisCycle(
        vision or AnthropicVisionClient(client, model_name=settings.ANTHROPIC_MODEL_VISION,
                                        max_tokens=settings.MAX_OUTPUT_TOKENS),
        max_attempts=settings.DIAGNOSIS_MAX_ATTEMPTS,
        backoff_seconds=settings.DIAGNOSIS_BACKOFF_SECONDS,
    )

    @app.exception_handler(AquabotError)
    async def aquabot_exception_handler(request: Request, exc: AquabotError):
        logger.warning(f"{exc.__class__.__name__} in {request.url.path}: {exc.message}")
        http_exc = map_error(exc)
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})

    app.include_router(create_health_router())
    app.include_router(create_chat_router(app=app), prefix="/api/ai", tags=["AI"])
    return app


if __name__ == "__main__":
    import uvicorn

    load_dotenv(find_dotenv())
    _settings = get_settings()
    uvicorn.run(
        create_app(settings=_settings),
        host="0.0.0.0",
        port=_settings.PORT,
        log_config=None,   # logging is configured by create_app
        log_level=None,
    )
