import uuid
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookshelf.core.config import settings
from bookshelf.core.logging import get_logger

logger = get_logger(__name__)


class BookshelfError(Exception):
    """Base exception for the Bookshelf application."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(BookshelfError):
    """Book or document not found, or a document requested under the wrong book."""

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NOT_FOUND", details)


class AuthenticationError(BookshelfError):
    """Authentication related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "AUTHENTICATION_ERROR", details)


class ForbiddenError(BookshelfError):
    """Caller does not own the resource it tried to mutate."""

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "AUTHORIZATION_ERROR", details)


class ValidationError(BookshelfError):
    """Validation related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class SizeExceededError(ValidationError):
    """Declared document size is above the configured maximum."""

    def __init__(self, size_bytes: int, max_size_bytes: int):
        super().__init__(
            "document size exceeds maximum allowed size",
            {"size_bytes": size_bytes, "max_size_bytes": max_size_bytes},
        )
        self.error_code = "SIZE_EXCEEDED"


class InvalidChecksumError(ValidationError):
    """Checksum is not 64 lowercase hex characters."""

    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "INVALID_CHECKSUM"


class AlreadyExistsError(BookshelfError):
    """The same content has already been uploaded for this book."""

    def __init__(
        self,
        message: str = "this document already exists",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, "ALREADY_EXISTS", details)


@dataclass
class CleanupOutcome:
    """Result of a best-effort storage cleanup performed while failing an upload."""

    attempted: bool = False
    succeeded: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "error": self.error,
        }


class UploadInvalidationError(BookshelfError):
    """Uploaded object does not match the declared metadata."""

    def __init__(
        self,
        message: str = "document validation failed",
        reason: Optional[str] = None,
        cleanup: Optional[CleanupOutcome] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.reason = reason
        self.cleanup = cleanup or CleanupOutcome()
        details = details or {}
        if reason:
            details["reason"] = reason
        details["cleanup"] = self.cleanup.to_dict()
        super().__init__(message, "UPLOAD_INVALID", details)


class StorageError(BookshelfError):
    """Object storage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "STORAGE_ERROR", details)


class ObjectNotFoundError(StorageError):
    """Object is absent from storage."""

    def __init__(self, message: str, object_key: Optional[str] = None):
        super().__init__(message, {"object_key": object_key} if object_key else None)
        self.error_code = "OBJECT_NOT_FOUND"


class DatabaseError(BookshelfError):
    """Database related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DATABASE_ERROR", details)


class ExternalServiceError(BookshelfError):
    """External service related errors."""

    def __init__(
        self, message: str, service: str, details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        details["service"] = service
        super().__init__(message, "EXTERNAL_SERVICE_ERROR", details)


# 413 and 422 as literals: their starlette constant names differ between releases
STATUS_CODE_MAP = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "AUTHENTICATION_ERROR": status.HTTP_401_UNAUTHORIZED,
    "AUTHORIZATION_ERROR": status.HTTP_403_FORBIDDEN,
    "VALIDATION_ERROR": 422,
    "INVALID_CHECKSUM": 422,
    "SIZE_EXCEEDED": 413,
    "ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    "UPLOAD_INVALID": 422,
    "STORAGE_ERROR": status.HTTP_502_BAD_GATEWAY,
    "OBJECT_NOT_FOUND": status.HTTP_409_CONFLICT,
    "DATABASE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "EXTERNAL_SERVICE_ERROR": status.HTTP_502_BAD_GATEWAY,
}


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "INTERNAL_ERROR",
    details: Optional[Dict[str, Any]] = None,
    error_id: Optional[str] = None,
    request_path: Optional[str] = None,
) -> JSONResponse:
    """Create standardized error response."""

    error_id = error_id or str(uuid.uuid4())[:8]

    error_response = {
        "error": {
            "code": error_code,
            "message": message,
            "error_id": error_id,
        }
    }

    if details:
        error_response["error"]["details"] = details

    if request_path:
        error_response["error"]["path"] = request_path

    return JSONResponse(status_code=status_code, content=error_response)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    error_id = str(uuid.uuid4())[:8]

    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
    )

    response = create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code="HTTP_ERROR",
        error_id=error_id,
        request_path=str(request.url.path),
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    error_id = str(uuid.uuid4())[:8]

    logger.warning(
        "Validation exception occurred",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method,
        error_id=error_id,
    )

    formatted_errors = []
    for error in exc.errors():
        formatted_errors.append(
            {
                "field": ".".join(str(x) for x in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
        )

    return create_error_response(
        status_code=422,
        message="Request validation failed",
        error_code="VALIDATION_ERROR",
        details={"validation_errors": formatted_errors},
        error_id=error_id,
        request_path=str(request.url.path),
    )


async def bookshelf_exception_handler(
    request: Request, exc: BookshelfError
) -> JSONResponse:
    """Handle custom application exceptions."""
    error_id = str(uuid.uuid4())[:8]

    status_code = STATUS_CODE_MAP.get(
        exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR
    )

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Application exception occurred",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
    )

    # Don't expose upstream internals in production
    message = exc.message
    details = exc.details
    if status_code >= 500 and settings.is_production:
        message = "Upstream service error occurred"
        details = None

    return create_error_response(
        status_code=status_code,
        message=message,
        error_code=exc.error_code,
        details=details,
        error_id=error_id,
        request_path=str(request.url.path),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    error_id = str(uuid.uuid4())[:8]

    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        error_id=error_id,
        exc_info=True,
    )

    if settings.is_development:
        details = {
            "error_type": type(exc).__name__,
            "traceback": traceback.format_exc().split("\n"),
        }
        message = str(exc)
    else:
        details = None
        message = "An unexpected error occurred"

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message=message,
        error_code="INTERNAL_ERROR",
        details=details,
        error_id=error_id,
        request_path=str(request.url.path),
    )


def setup_exception_handlers(app):
    """Setup all exception handlers for the FastAPI app."""

    # Custom application exceptions
    app.add_exception_handler(BookshelfError, bookshelf_exception_handler)

    # HTTP exceptions
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Validation errors
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # General exception handler (catch-all)
    app.add_exception_handler(Exception, general_exception_handler)
