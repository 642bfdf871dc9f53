"""FastAPI application entry point."""

import asyncio as _asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from kyartu.api import health_router, kv_router, state_router
from kyartu.api.routes.kv import close_redis_client
from kyartu.core.config import get_settings
from kyartu.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from kyartu.core.logging import get_logger, setup_logging
from kyartu.core.tasks import create_background_task, run_periodically
from kyartu.db.session import close_db, init_db
from kyartu.services.cache import close_cache_service, get_cache_service

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Startup:
    - Create the local fallback tables
    - Schedule purging of expired local copies

    Shutdown:
    - Stop the purge task
    - Close the cache HTTP client, the Redis client and the database engine
    """
    settings = get_settings()

    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    purge_task: _asyncio.Task[Any] | None = None
    if settings.fallback_enabled:
        # Retry transient failures opening the local database
        for _attempt in range(3):
            try:
                await init_db()
                break
            except Exception as exc:
                if _attempt == 2:
                    logger.error("Failed to initialize fallback database after 3 attempts", error=str(exc))
                    raise
                logger.warning(
                    "Fallback database init failed, retrying...",
                    attempt=_attempt + 1,
                    error=str(exc),
                )
                await _asyncio.sleep(2 ** _attempt)
        logger.info("Fallback database initialized")

        local_store = get_cache_service().coordinator.local_store
        if local_store is not None:
            purge_task = create_background_task(
                run_periodically(
                    settings.fallback_purge_interval,
                    local_store.purge_expired,
                    name="local-cache-purge",
                ),
                name="local-cache-purge",
            )

    yield

    # Cleanup
    logger.info("Shutting down application")

    if purge_task is not None:
        purge_task.cancel()
        with contextlib.suppress(_asyncio.CancelledError):
            await purge_task

    await close_cache_service()
    logger.info("Cache client closed")

    await close_redis_client()
    logger.info("Redis client closed")

    await close_db()
    logger.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Conversational state for the Kyartu Vzgo chat persona",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(kv_router)
    app.include_router(state_router, prefix="/api/v1")

    return app


# Create application instance
app = create_app()
