from __future__ import annotations

import time
from functools import lru_cache

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from tts_gateway.api import router as api_router
from tts_gateway.config import settings
from tts_gateway.container import (
    get_credential_rotator,
    get_orchestrator,
    get_quota_ledger,
    get_speech_provider,
)
from tts_gateway.logging_utils import get_logger


logger = get_logger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="tts-gateway", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_http_requests(request: Request, call_next):
        """Centralized logging for all HTTP requests."""
        start = time.monotonic()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration = time.monotonic() - start
            client_host = request.client.host if request.client else "unknown"
            status_code = response.status_code if response is not None else 500
            logger.info(
                "HTTP %s %s from %s -> %d in %.3fs",
                request.method,
                request.url.path,
                client_host,
                status_code,
                duration,
            )

    app.include_router(api_router)

    @app.on_event("startup")
    async def on_startup() -> None:
        # Force-init singletons so that configuration errors (empty key
        # pool, unknown provider or timezone) surface at startup.
        provider = get_speech_provider()
        rotator = get_credential_rotator()
        ledger = get_quota_ledger()
        get_orchestrator()
        logger.info(
            "Gateway initialized (provider=%s, credentials=%d, quota_timezone=%s)",
            provider.id,
            rotator.pool_size,
            ledger.timezone.key,
        )

    return app


@lru_cache(maxsize=1)
def get_app() -> FastAPI:
    return create_app()


app = get_app()
