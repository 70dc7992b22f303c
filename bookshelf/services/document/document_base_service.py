"""
Document Base Service - Common utilities and shared functionality.

This service provides the foundation for all document services with:
- Injected collaborators (record store, object storage, ownership guard)
- Shared configuration and logging
- Book-scoped document lookup
"""

from typing import Optional

from bookshelf.core.config import settings
from bookshelf.core.exceptions import NotFoundError
from bookshelf.core.logging import get_service_logger
from bookshelf.core.storage_client import StorageClient, get_storage_client
from bookshelf.models.document import Document
from bookshelf.services.book.book_store import BookStore
from bookshelf.services.ownership import OwnershipGuard
from .document_store import DocumentStore


class DocumentBaseService:
    """Base service with common functionality shared across all document services."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        book_store: Optional[BookStore] = None,
        storage: Optional[StorageClient] = None,
        guard: Optional[OwnershipGuard] = None,
    ):
        """Initialize base service with common configuration."""
        self.logger = get_service_logger("document")

        self.store = store or DocumentStore()
        self.book_store = book_store or BookStore()
        self.storage = storage or get_storage_client()
        self.guard = guard or OwnershipGuard(self.book_store)

        # Document constraints
        self.max_size_bytes = settings.MAX_DOCUMENT_SIZE_BYTES
        self.upload_url_minutes = settings.UPLOAD_URL_EXPIRATION_MINUTES
        self.download_url_minutes = settings.DOWNLOAD_URL_EXPIRATION_MINUTES

    async def _get_book_document(self, book_id: int, document_id: int) -> Document:
        """
        Fetch a document that belongs to ``book_id``.

        Raises:
            NotFoundError: if the document is absent or attached to another book
        """
        document = await self.store.get(document_id)
        if document is None or document.book_id != book_id:
            raise NotFoundError(
                "document not found",
                {"book_id": book_id, "document_id": document_id},
            )
        return document
