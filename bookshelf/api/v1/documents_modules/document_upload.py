"""
Document upload endpoints.

Uploads never pass through the API. The client asks for a signed PUT URL,
uploads the bytes straight to object storage, then calls ``complete`` so the
API can reconcile the stored object with the declared size and type.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from bookshelf.core.exceptions import BookshelfError
from bookshelf.models.schemas import (
    DocumentPresignRequest,
    DocumentPresignResponse,
    DocumentResponse,
    error_responses,
)
from .common import (
    get_document_dependencies,
    get_user_context,
    log_operation_error,
    log_operation_start,
    log_operation_success,
)

router = APIRouter()


@router.post(
    "/presign",
    response_model=DocumentPresignResponse,
    status_code=status.HTTP_201_CREATED,
    summary="📤 Request Upload URL",
    operation_id="presignDocumentUpload",
    description="""Issue a signed URL for uploading a document directly to object storage.

**Authentication Required:** `Authorization: Bearer <token>`; the caller must own the book.

**Request Body:**
- `sizeBytes`: exact file size (max 20 MiB)
- `checksumSha256Hex`: lowercase hex SHA-256 of the file (64 characters)
- `contentType`: `application/pdf` or `application/epub+zip`
- `filename`: display name

**Behavior:**
- The object key is `book-{bookId}/{checksumSha256Hex}`, so identical content is stored once per book
- The URL is valid for 15 minutes and only accepts the declared content type and checksum
- Re-requesting a URL for content that is still pending refreshes the pending record
- Content that was already uploaded is rejected with `409`

**Example Request:**
```bash
curl -X POST "http://localhost:8080/api/v1/books/1/documents/presign" \\
  -H "Authorization: Bearer <token>" \\
  -H "Content-Type: application/json" \\
  -d '{"sizeBytes": 1048576, "checksumSha256Hex": "9f86d0...", "contentType": "application/pdf", "filename": "book.pdf"}'
```

Then upload with the returned URL:
```bash
curl -X PUT "<uploadUrl>" \\
  -H "Content-Type: application/pdf" \\
  -H "x-amz-checksum-sha256: <base64 digest>" \\
  --data-binary @book.pdf
```
""",
    responses=error_responses(401, 403, 404, 409, 413, 422, 502),
)
async def presign_upload(
    book_id: int,
    request: DocumentPresignRequest,
    user_context: Dict[str, str] = Depends(get_user_context),
    deps: Dict[str, Any] = Depends(get_document_dependencies),
):
    """Issue a signed PUT URL and record the document as pending."""
    document_service = deps["document_service"]

    try:
        log_operation_start(
            "Upload URL generation",
            book_id=book_id,
            size_bytes=request.size_bytes,
            content_type=request.content_type,
            **user_context,
        )

        result = await document_service.presign_upload(
            caller_id=user_context["user_id"],
            book_id=book_id,
            size_bytes=request.size_bytes,
            checksum_hex=request.checksum_sha256_hex,
            content_type=request.content_type,
            filename=request.filename,
        )

        log_operation_success(
            "Upload URL generation",
            book_id=book_id,
            document_id=result.document.id,
            **user_context,
        )

        return DocumentPresignResponse(
            document=DocumentResponse.from_document(result.document),
            upload_url=result.upload_url,
            upload_method=result.upload_method,
            expires_at=result.expires_at,
        )

    except BookshelfError as e:
        log_operation_error(
            "Upload URL generation", e.message, book_id=book_id, code=e.error_code, **user_context
        )
        raise


@router.post(
    "/{document_id}/complete",
    response_model=DocumentResponse,
    summary="✅ Complete Upload",
    operation_id="completeDocumentUpload",
    description="""Finalize a document after its bytes were uploaded with the signed URL.

**Authentication Required:** `Authorization: Bearer <token>`; the caller must own the book.

**Behavior:**
- The stored object's size and content type are compared with what was declared
- On a match the document becomes `uploaded`
- On a mismatch the object is deleted, the document becomes `failed` and `422 UPLOAD_INVALID` is returned
  with the failure `reason` and the `cleanup` outcome in `error.details`
- If the object is not in storage yet, `409 OBJECT_NOT_FOUND` is returned and the document stays `pending`
- Completing an `uploaded` document again returns it unchanged
""",
    responses=error_responses(401, 403, 404, 409, 422, 502),
)
async def complete_upload(
    book_id: int,
    document_id: int,
    user_context: Dict[str, str] = Depends(get_user_context),
    deps: Dict[str, Any] = Depends(get_document_dependencies),
):
    """Verify the uploaded object and mark the document uploaded."""
    document_service = deps["document_service"]

    try:
        log_operation_start(
            "Upload completion", book_id=book_id, document_id=document_id, **user_context
        )

        document = await document_service.complete_upload(
            user_context["user_id"], book_id, document_id
        )

        log_operation_success(
            "Upload completion",
            book_id=book_id,
            document_id=document_id,
            status=document.status.value,
            **user_context,
        )

        return DocumentResponse.from_document(document)

    except BookshelfError as e:
        log_operation_error(
            "Upload completion",
            e.message,
            book_id=book_id,
            document_id=document_id,
            code=e.error_code,
            **user_context,
        )
        raise
