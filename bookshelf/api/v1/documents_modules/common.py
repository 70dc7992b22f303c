"""
Shared utilities and dependencies for document API endpoints.

Domain errors raised by the services are translated into HTTP responses by
the global exception handlers; endpoints only log around each operation.
"""

from typing import Any, Dict, Optional

from fastapi import Depends

from bookshelf.core.logging import get_api_logger
from bookshelf.core.security import CallerIdentity, get_current_user, get_optional_user
from bookshelf.services.document import DocumentService, get_document_service

# Shared logger instance
logger = get_api_logger()


def get_document_dependencies(
    document_service: DocumentService = Depends(get_document_service),
) -> Dict[str, Any]:
    """Get common dependencies for document endpoints."""
    return {"document_service": document_service, "logger": logger}


async def get_user_context(
    current_user: CallerIdentity = Depends(get_current_user),
) -> Dict[str, str]:
    """Extract user context for an authenticated request."""
    return {"user_id": current_user.user_id}


async def get_optional_user_context(
    current_user: Optional[CallerIdentity] = Depends(get_optional_user),
) -> Dict[str, Optional[str]]:
    """Extract user context for a request that may be anonymous."""
    return {"user_id": current_user.user_id if current_user else None}


def log_operation_start(operation: str, **context) -> None:
    """Log the start of an operation consistently."""
    logger.info(f"{operation} started", **context)


def log_operation_success(operation: str, **context) -> None:
    """Log successful operation completion consistently."""
    logger.info(f"{operation} completed successfully", **context)


def log_operation_error(operation: str, error: str, **context) -> None:
    """Log operation errors consistently."""
    logger.warning(f"{operation} failed", error=error, **context)
