"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
background tasks) to improve testability and separation of concerns
compared to a monolithic main.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import (
    analysis_router,
    auth_router,
    conversations_router,
    health_router,
    notion_router,
    strategies_router,
    tradingview_router,
)
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import run_rate_limit_sweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the rate limit sweeper for the lifetime of the app."""
    interval = settings.app.rate_limit_sweep_interval_seconds
    sweeper = asyncio.create_task(run_rate_limit_sweeper(interval))
    logger.info("app.startup", extra={"sweep_interval_s": interval, "app_env": settings.app_env})
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Trading Setup Assistant API",
        description=(
            "Upload a trading strategy (PDF or Notion page), upload chart screenshots, "
            "and get AI-generated trade-setup analysis evaluated against the strategy. "
            "Stores strategies and conversations per user. Authenticated with bearer "
            "tokens; login, registration and model-heavy endpoints are rate limited."
        ),
        version="0.1.0",
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(auth_router, prefix="/api")
    app.include_router(strategies_router, prefix="/api")
    app.include_router(analysis_router, prefix="/api")
    app.include_router(conversations_router, prefix="/api")
    app.include_router(notion_router, prefix="/api")
    app.include_router(tradingview_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
