"""
Document services package.

Each service has a single responsibility; DocumentService composes them.

Services:
- document_store: record persistence with conditional status transitions
- document_base_service: injected collaborators and book-scoped lookup
- document_upload_service: signed upload URLs with dedup
- document_verification_service: completion state machine
- document_download_service: signed download URLs and deletion
- document_query_service: metadata and per-book listing
- pending_upload_reaper: expiry of never-completed uploads
- document_service: orchestration facade (main interface)
"""

from .document_service import DocumentService, get_document_service

__all__ = [
    "DocumentService",
    "get_document_service",
]
