"""
Document management endpoints.

Listing and metadata reads are public; owners additionally see documents
whose upload has not completed. Deletion requires ownership.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from bookshelf.core.exceptions import BookshelfError
from bookshelf.models.schemas import DocumentList, DocumentResponse, error_responses
from bookshelf.models.schemas.base import DEFAULT_LIMIT, MAX_LIMIT
from .common import (
    get_document_dependencies,
    get_optional_user_context,
    get_user_context,
    log_operation_error,
    log_operation_start,
    log_operation_success,
)

router = APIRouter()


@router.get(
    "",
    response_model=DocumentList,
    summary="📋 List Book Documents",
    operation_id="listBookDocuments",
    description="""List the documents attached to a book.

**Authentication Optional:** the book owner sees every document (`pending`, `uploaded`, `failed`);
everyone else only sees `uploaded` documents.

**Query Parameters:**
- `limit`: page size (default 20, max 100)
- `offset`: items to skip (default 0)

`total` counts the documents visible to the caller.
""",
    responses=error_responses(404),
)
async def list_documents(
    book_id: int,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Page size"),
    offset: int = Query(0, ge=0, description="Items to skip"),
    user_context: Dict[str, Optional[str]] = Depends(get_optional_user_context),
    deps: Dict[str, Any] = Depends(get_document_dependencies),
):
    """List documents of a book visible to the caller."""
    document_service = deps["document_service"]

    result = await document_service.list_by_book(
        user_context["user_id"], book_id, limit=limit, offset=offset
    )
    return result


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    summary="📄 Get Document",
    operation_id="getDocument",
    description="""Get the metadata of a single document.

A document requested under a book it does not belong to is reported as not found.
""",
    responses=error_responses(404),
)
async def get_document(
    book_id: int,
    document_id: int,
    deps: Dict[str, Any] = Depends(get_document_dependencies),
):
    """Return document metadata scoped to its book."""
    document_service = deps["document_service"]
    document = await document_service.get_document_meta(book_id, document_id)
    return DocumentResponse.from_document(document)


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="🗑️ Delete Document",
    operation_id="deleteDocument",
    description="""Delete a document and its stored object.

**Authentication Required:** `Authorization: Bearer <token>`; the caller must own the book.

The stored object is removed first. If storage fails the record is kept and `502` is returned,
so the request can be retried.
""",
    responses=error_responses(401, 403, 404, 502),
)
async def delete_document(
    book_id: int,
    document_id: int,
    user_context: Dict[str, str] = Depends(get_user_context),
    deps: Dict[str, Any] = Depends(get_document_dependencies),
):
    """Delete a document owned by the caller."""
    document_service = deps["document_service"]

    try:
        log_operation_start(
            "Document deletion", book_id=book_id, document_id=document_id, **user_context
        )

        await document_service.delete_document(user_context["user_id"], book_id, document_id)

        log_operation_success(
            "Document deletion", book_id=book_id, document_id=document_id, **user_context
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    except BookshelfError as e:
        log_operation_error(
            "Document deletion",
            e.message,
            book_id=book_id,
            document_id=document_id,
            code=e.error_code,
            **user_context,
        )
        raise
