"""FastAPI Application Entry Point.

Book catalog API built with FastAPI, featuring:
- Books with ISBN metadata lookup and stored cover images
- Documents uploaded directly to S3-compatible storage with signed URLs
- Bearer token authentication against an external identity provider
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bookshelf.core.config import settings
from bookshelf.core.logging import configure_logging, setup_request_logging, get_logger
from bookshelf.core.exceptions import setup_exception_handlers
from bookshelf.core.db_client import db
from bookshelf.core.middleware import setup_all_middleware
from bookshelf.core.openapi import create_custom_openapi
from bookshelf.services.document.pending_upload_reaper import PendingUploadReaper

# Configure logging first
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info(
        "Starting application",
        project_name=settings.PROJECT_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
    )

    startup_tasks = []

    # Initialize database connection
    try:
        await db.get_engine_async()
        # Create tables in development mode
        if settings.is_development:
            await db.create_tables()
            startup_tasks.append("Database tables created/verified")

        if await db.test_connection():
            startup_tasks.append("Database connected")
        else:
            logger.warning("Database connection test failed")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        if settings.is_production:
            raise

    # Expire abandoned uploads in the background
    sweep_task = None
    if settings.PENDING_SWEEP_ENABLED:
        sweep_task = asyncio.create_task(PendingUploadReaper().run_forever())
        startup_tasks.append("Pending upload sweeper started")

    logger.info("Application startup completed", tasks=startup_tasks)

    yield

    # Shutdown
    logger.info("Shutting down application")

    shutdown_tasks = []

    if sweep_task is not None:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task
        shutdown_tasks.append("Pending upload sweeper stopped")

    # Close database connections
    try:
        await db.close()
        shutdown_tasks.append("Database connections closed")
    except Exception as e:
        logger.error("Error closing database", error=str(e))

    logger.info("Application shutdown completed", tasks=shutdown_tasks)


# API Description
API_DESCRIPTION = """# Bookshelf API

## Overview
Shared book catalog. Anyone can browse books and download their documents; signed-in users
add books and attach PDF or EPUB files to the books they own.

## Authentication
Bearer tokens issued by the identity provider:
- **Header**: `Authorization: Bearer <token>`
- Required for creating, updating and deleting books and documents

## Document uploads
Files go straight to object storage:
1. `POST /api/v1/books/{bookId}/documents/presign` with size, SHA-256 and content type
2. `PUT` the file to the returned `uploadUrl`
3. `POST /api/v1/books/{bookId}/documents/{documentId}/complete`

**File Support:** PDF, EPUB (max 20 MiB)
"""

# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=API_DESCRIPTION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json" if settings.DEBUG else None,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Setup middleware (CORS, then request timing)
setup_all_middleware(app)

# Setup exception handlers AFTER CORS middleware
setup_exception_handlers(app)

# Setup request logging
setup_request_logging(app)


# Include health router (root level endpoints)
from bookshelf.api.health import router as health_router  # noqa: E402

app.include_router(health_router)

# Include API routers
from bookshelf.api.v1.books import router as books_router  # noqa: E402
from bookshelf.api.v1.documents_main import router as documents_router  # noqa: E402

# Book catalog router
app.include_router(books_router, prefix=settings.API_V1_STR)

# Book documents router (/books/{book_id}/documents)
app.include_router(documents_router, prefix=settings.API_V1_STR)

# Custom OpenAPI schema
app.openapi = lambda: create_custom_openapi(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookshelf.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
