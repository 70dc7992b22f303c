"""
Document download endpoints.

Downloads redirect to a short-lived signed GET URL, so file bytes are served
by object storage rather than the API.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from bookshelf.core.exceptions import BookshelfError
from bookshelf.models.schemas import error_responses
from .common import (
    get_document_dependencies,
    log_operation_error,
    log_operation_success,
)

router = APIRouter()


@router.get(
    "/{document_id}/download",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
    summary="↪️ Download Document",
    operation_id="downloadDocument",
    description="""Redirect to a signed download URL for the document.

**Authentication:** none; anyone who knows the book and document ids may download.

**Behavior:**
- Returns HTTP 302 to a signed GET URL valid for 15 minutes
- Browsers follow the redirect and start the download

**Example Request:**
```bash
curl -L "http://localhost:8080/api/v1/books/1/documents/7/download" -o book.pdf
```
""",
    responses=error_responses(404, 502),
)
async def download_document(
    book_id: int,
    document_id: int,
    deps: Dict[str, Any] = Depends(get_document_dependencies),
):
    """Redirect to a signed GET URL for the document."""
    document_service = deps["document_service"]

    try:
        presigned = await document_service.download(book_id, document_id)
    except BookshelfError as e:
        log_operation_error(
            "Download URL generation",
            e.message,
            book_id=book_id,
            document_id=document_id,
            code=e.error_code,
        )
        raise

    log_operation_success("Download URL generation", book_id=book_id, document_id=document_id)
    return RedirectResponse(url=presigned.url, status_code=status.HTTP_302_FOUND)
