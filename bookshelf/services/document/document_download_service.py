"""
Document Download Service - signed download URLs and document removal.

Downloads are public: anyone who knows the book and document ids gets a
short-lived signed GET URL. Deletion requires ownership and removes the
storage object before the record, so a storage failure leaves the record
in place for a retry.
"""

from bookshelf.core.storage_client import PresignedRequest
from .document_base_service import DocumentBaseService


class DocumentDownloadService(DocumentBaseService):
    """Service for document download URLs and deletion."""

    async def download(self, book_id: int, document_id: int) -> PresignedRequest:
        """
        Generate a signed GET URL for a document.

        Raises:
            NotFoundError: if the document is absent or belongs to another book
            StorageError: if the URL could not be signed
        """
        document = await self._get_book_document(book_id, document_id)

        presigned = await self.storage.presign_get_async(
            document.object_key, self.download_url_minutes
        )

        self.logger.info(
            "Download URL issued",
            book_id=book_id,
            document_id=document_id,
            object_key=document.object_key,
        )
        return presigned

    async def delete_document(self, caller_id: str, book_id: int, document_id: int) -> None:
        """
        Delete a document's storage object and then its record.

        Raises:
            NotFoundError: if the book or document does not exist
            ForbiddenError: if the caller does not own the book
            StorageError: if the object could not be deleted; the record is kept
        """
        await self.guard.resolve_owned_book(caller_id, book_id)
        document = await self._get_book_document(book_id, document_id)

        await self.storage.delete_object_async(document.object_key)
        await self.store.delete(document.id)

        self.logger.info(
            "Document deleted",
            book_id=book_id,
            document_id=document_id,
            object_key=document.object_key,
        )
