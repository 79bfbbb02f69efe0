"""
AI chat relay application.

FastAPI application with structured logging, error handling,
and request throttling.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aichat import __version__
from aichat.api import health_router, v1_router
from aichat.config import get_settings
from aichat.core import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    get_logger,
    setup_exception_handlers,
    setup_logging,
)
from aichat.db import dispose_engine, verify_database_connection
from aichat.providers import OpenAICompatProvider

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    logger.info(
        "Starting AI chat relay",
        data={
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
            "model": settings.ai_model,
            "base_url": settings.ai_base_url,
        },
    )

    # Verify database connectivity (does NOT run migrations)
    if verify_database_connection():
        logger.info("Database connection verified")
    else:
        logger.warning(
            "Database connection failed - run 'alembic upgrade head' to initialize"
        )

    if not settings.ai_api_key:
        logger.warning("AI_API_KEY is not set; upstream calls will be unauthenticated")

    app.state.start_time = datetime.now(UTC)

    # Build the upstream provider unless one was provided (useful in tests)
    provider_created = False
    if getattr(app.state, "provider", None) is None:
        app.state.provider = OpenAICompatProvider(
            settings.ai_base_url,
            settings.ai_api_key,
            timeout_seconds=settings.ai_timeout_seconds,
        )
        provider_created = True

    yield

    logger.info("Shutting down AI chat relay")
    dispose_engine()
    if provider_created:
        await app.state.provider.aclose()
        app.state.provider = None
        app.state.chat_service = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="AI Chat Relay",
        description="Streams upstream chat completions to clients over server-sent events",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    setup_exception_handlers(app)

    # Add middleware (order matters - last added = first executed)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.rate_limit_rpm)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "aichat.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
