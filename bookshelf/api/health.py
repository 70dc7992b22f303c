"""Health check and monitoring endpoints.

Provides endpoints for:
- Basic API information
- Health checks with database and object storage status
- Kubernetes readiness/liveness probes
"""

import asyncio
import time
from typing import Any, Dict

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from bookshelf.core.config import settings
from bookshelf.core.db_client import db
from bookshelf.core.logging import get_logger
from bookshelf.core.storage_client import get_storage_client

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/")
async def root() -> Dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "status": "running",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/health",
    }


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint with database and storage verification.

    Returns 200 if the database is reachable, 503 otherwise. Object storage
    is reported but does not fail the check.
    """
    try:
        db_available = await db.test_connection(timeout=5.0)
        storage_available = await asyncio.to_thread(get_storage_client().health_check)

        body = {
            "status": "healthy" if storage_available else "degraded",
            "timestamp": time.time(),
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "database": "connected" if db_available else "unavailable",
            "storage": "connected" if storage_available else "unavailable",
        }

        if not db_available:
            logger.warning("Health check failed: database unavailable")
            body["status"] = "unhealthy"
            return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)

        return body

    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "timestamp": time.time(),
                "version": settings.VERSION,
                "error": str(e),
            },
        )


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """Readiness probe endpoint for Kubernetes."""
    try:
        db_available = await db.test_connection(timeout=5.0)

        if not db_available:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "ready": False,
                    "reason": "Database not ready",
                    "timestamp": time.time(),
                },
            )

        return {"ready": True, "timestamp": time.time()}

    except Exception as e:
        logger.error("Readiness check failed", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ready": False, "reason": str(e), "timestamp": time.time()},
        )


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    """Liveness probe endpoint for Kubernetes."""
    return {"alive": True, "timestamp": time.time()}
