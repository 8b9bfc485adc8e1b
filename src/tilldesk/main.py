# File: src/tilldesk/main.py
"""FastAPI application factory."""

import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from tilldesk.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup and shutdown events."""
    start_time = datetime.now()
    logger.info("app.startup", message="TillDesk starting up", timestamp=start_time.isoformat())

    from tilldesk.api.health import set_app_start_time

    set_app_start_time(start_time)

    yield

    logger.info("app.shutdown", message="TillDesk shutting down gracefully")


def _setup_middleware(app: FastAPI) -> None:
    """Configure all middleware in correct order."""
    # Last added = first executed: RequestIDMiddleware runs before Sentry context
    from tilldesk.middleware.logging import RequestIDMiddleware
    from tilldesk.middleware.sentry import SentryContextMiddleware

    app.add_middleware(SentryContextMiddleware)
    app.add_middleware(RequestIDMiddleware)


def _register_routers(app: FastAPI) -> None:
    """Register all API routers."""
    from tilldesk.api.health import router as health_router
    from tilldesk.api.register_sessions import router as register_sessions_router

    app.include_router(health_router)
    app.include_router(register_sessions_router)


def create_app() -> FastAPI:
    """Application factory for TillDesk."""
    from tilldesk.core.sentry import init_sentry

    init_sentry()

    app = FastAPI(
        title="TillDesk API",
        description="Cash register session and reconciliation service",
        version="0.1.0",
        lifespan=lifespan,
    )

    from tilldesk.core.exception_handlers import register_exception_handlers

    register_exception_handlers(app)

    _setup_middleware(app)
    _register_routers(app)

    logger.info(
        "app.configured",
        message="FastAPI application created successfully",
        environment=os.getenv("ENVIRONMENT", "development"),
    )

    return app


def run() -> None:
    """Development server entrypoint."""
    uvicorn.run(
        "tilldesk.main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
