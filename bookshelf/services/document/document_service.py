"""
Document Service - Main orchestration facade for the document upload pipeline.

The facade composes specialized services that share one record store, one
book store, one storage client and one ownership guard:
- DocumentUploadService: signed upload URLs with dedup
- DocumentVerificationService: completion state machine
- DocumentDownloadService: signed download URLs and deletion
- DocumentQueryService: metadata and per-book listing
"""

from typing import Optional

from bookshelf.core.storage_client import PresignedRequest, StorageClient, get_storage_client
from bookshelf.models.document import Document
from bookshelf.models.schemas import DocumentList
from bookshelf.services.book.book_store import BookStore
from bookshelf.services.ownership import OwnershipGuard

from .document_download_service import DocumentDownloadService
from .document_query_service import DocumentQueryService
from .document_store import DocumentStore
from .document_upload_service import DocumentUploadService, PresignResult
from .document_verification_service import DocumentVerificationService


class DocumentService:
    """Main document service implementing facade pattern."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        book_store: Optional[BookStore] = None,
        storage: Optional[StorageClient] = None,
    ):
        self.store = store or DocumentStore()
        self.book_store = book_store or BookStore()
        self.storage = storage or get_storage_client()
        self.guard = OwnershipGuard(self.book_store)

        collaborators = dict(
            store=self.store,
            book_store=self.book_store,
            storage=self.storage,
            guard=self.guard,
        )
        self.upload_service = DocumentUploadService(**collaborators)
        self.verification_service = DocumentVerificationService(**collaborators)
        self.download_service = DocumentDownloadService(**collaborators)
        self.query_service = DocumentQueryService(**collaborators)

    async def presign_upload(
        self,
        caller_id: str,
        book_id: int,
        size_bytes: int,
        checksum_hex: str,
        content_type: str,
        filename: str,
    ) -> PresignResult:
        """Delegate to upload service."""
        return await self.upload_service.presign_upload(
            caller_id=caller_id,
            book_id=book_id,
            size_bytes=size_bytes,
            checksum_hex=checksum_hex,
            content_type=content_type,
            filename=filename,
        )

    async def complete_upload(self, caller_id: str, book_id: int, document_id: int) -> Document:
        """Delegate to verification service."""
        return await self.verification_service.complete_upload(caller_id, book_id, document_id)

    async def get_document_meta(self, book_id: int, document_id: int) -> Document:
        """Delegate to query service."""
        return await self.query_service.get_document_meta(book_id, document_id)

    async def list_by_book(
        self,
        caller_id: Optional[str],
        book_id: int,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> DocumentList:
        """Delegate to query service."""
        return await self.query_service.list_by_book(caller_id, book_id, limit, offset)

    async def download(self, book_id: int, document_id: int) -> PresignedRequest:
        """Delegate to download service."""
        return await self.download_service.download(book_id, document_id)

    async def delete_document(self, caller_id: str, book_id: int, document_id: int) -> None:
        """Delegate to download service."""
        await self.download_service.delete_document(caller_id, book_id, document_id)


_document_service: Optional[DocumentService] = None


def get_document_service() -> DocumentService:
    """FastAPI dependency returning the process-wide facade."""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
