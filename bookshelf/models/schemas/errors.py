"""Error response schemas for OpenAPI documentation."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standardized API error response body."""

    code: str = Field(
        ...,
        description="Error code for client-side handling",
        examples=["VALIDATION_ERROR"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Request validation failed"],
    )
    error_id: Optional[str] = Field(
        None,
        description="Unique error ID for support tracking",
        examples=["a1b2c3d4"],
    )
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context and field-specific errors",
    )
    path: Optional[str] = Field(
        None,
        description="Request path that caused the error",
        examples=["/api/v1/books/42/documents/presign"],
    )


class APIErrorResponse(BaseModel):
    """Wrapper for error responses (matches actual API error format)."""

    error: ErrorResponse = Field(..., description="Error details")


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """Build the `responses=` mapping for a route from the listed status codes."""
    descriptions = {
        401: "Missing or invalid bearer token",
        403: "Caller does not own the book",
        404: "Book or document not found",
        409: "Conflicting state",
        413: "Declared size exceeds the maximum",
        422: "Validation failed",
        502: "Object storage or upstream failure",
    }
    return {
        code: {"model": APIErrorResponse, "description": descriptions.get(code, "Error")}
        for code in status_codes
    }
