"""Middleware configuration for FastAPI application.

Provides:
- CORS middleware setup
- Request timing middleware
"""

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from bookshelf.core.config import settings
from bookshelf.core.logging import get_logger

logger = get_logger(__name__)


def setup_cors_middleware(app: FastAPI) -> None:
    """Configure CORS middleware with settings from config.

    Args:
        app: FastAPI application instance
    """
    logger.info(
        "CORS configuration",
        environment=settings.ENVIRONMENT,
        origins=settings.CORS_ORIGINS,
        credentials=settings.CORS_CREDENTIALS,
        methods=settings.CORS_METHODS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
        expose_headers=["Location", "X-Process-Time"],
    )


def setup_timing_middleware(app: FastAPI) -> None:
    """Add request timing middleware."""

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        return response


def setup_all_middleware(app: FastAPI) -> None:
    """Setup all middleware in correct order.

    CORS must be added first for OPTIONS requests to work correctly.
    """
    setup_cors_middleware(app)
    setup_timing_middleware(app)
