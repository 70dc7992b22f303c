"""
Document API Router

Aggregates the book-scoped document endpoints, mounted under
``/books/{book_id}/documents``:

- document_upload.py: Signed upload URLs and completion
- document_download.py: Signed download redirects
- document_management.py: Listing, metadata and deletion
- common.py: Shared utilities and dependencies
"""

from fastapi import APIRouter

from bookshelf.api.v1.documents_modules.document_upload import router as upload_router
from bookshelf.api.v1.documents_modules.document_management import router as management_router
from bookshelf.api.v1.documents_modules.document_download import router as download_router

DOCUMENTS_PREFIX = "/books/{book_id}/documents"

router = APIRouter()

# Order matters: specific routes must come before generic path parameter routes

# 1. Upload routes (/presign, /{document_id}/complete)
router.include_router(
    upload_router,
    prefix=DOCUMENTS_PREFIX,
    tags=["Document Upload"],
)

# 2. Download router (/{document_id}/download)
router.include_router(
    download_router,
    prefix=DOCUMENTS_PREFIX,
    tags=["Document Download"],
)

# 3. Generic path parameter routes (MUST BE LAST - has /{document_id})
router.include_router(
    management_router,
    prefix=DOCUMENTS_PREFIX,
    tags=["Document Management"],
)
