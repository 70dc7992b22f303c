"""Pydantic schemas for API requests and responses.

This package contains all Pydantic models organized by domain:
- book.py: Book schemas
- document.py: Document schemas
- errors.py: Error response schemas
- validators.py: Shared validator functions
- base.py: Base classes and pagination

Import from this module: `from bookshelf.models.schemas import BookResponse`
"""

from bookshelf.models.document import DocumentStatus

from bookshelf.models.schemas.base import CamelModel, PaginationParams

from bookshelf.models.schemas.book import (
    BookBase,
    BookCreate,
    BookUpdate,
    BookResponse,
    BookList,
    BookMetadata,
)

from bookshelf.models.schemas.document import (
    DocumentPresignRequest,
    DocumentPresignResponse,
    DocumentResponse,
    DocumentList,
)

from bookshelf.models.schemas.errors import (
    ErrorResponse,
    APIErrorResponse,
    error_responses,
)

__all__ = [
    "DocumentStatus",
    "CamelModel",
    "PaginationParams",
    "BookBase",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookList",
    "BookMetadata",
    "DocumentPresignRequest",
    "DocumentPresignResponse",
    "DocumentResponse",
    "DocumentList",
    "ErrorResponse",
    "APIErrorResponse",
    "error_responses",
]
