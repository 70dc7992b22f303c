"""
Document Verification Service - completion state machine.

A document starts ``pending`` and moves exactly once to ``uploaded`` or
``failed``. Completion reconciles what landed in storage (HEAD) with the
declared size and content type. Transitions are conditional on the record
still being pending, so concurrent completions have a single winner.
"""

from typing import Optional

from bookshelf.core.exceptions import (
    CleanupOutcome,
    NotFoundError,
    StorageError,
    UploadInvalidationError,
)
from bookshelf.core.storage_client import ObjectMetadata
from bookshelf.models.document import Document, DocumentStatus, FailureReason
from .document_base_service import DocumentBaseService


class DocumentVerificationService(DocumentBaseService):
    """Service for completing uploads."""

    def check_object(self, document: Document, head: ObjectMetadata) -> Optional[FailureReason]:
        """Return why the stored object does not match the record, or None."""
        if head.size != document.size_bytes:
            return FailureReason.SIZE_MISMATCH
        if head.size > self.max_size_bytes:
            return FailureReason.SIZE_EXCEEDED
        if head.content_type and head.content_type != document.content_type:
            return FailureReason.CONTENT_TYPE_MISMATCH
        return None

    async def _cleanup_object(self, document: Document) -> CleanupOutcome:
        """Delete an invalid object. Failures are logged and reported, never raised."""
        outcome = CleanupOutcome(attempted=True)
        try:
            await self.storage.delete_object_async(document.object_key)
            outcome.succeeded = True
        except StorageError as e:
            outcome.error = str(e)
            self.logger.warning(
                "Failed to delete invalid upload",
                document_id=document.id,
                object_key=document.object_key,
                error=str(e),
            )
        return outcome

    async def complete_upload(self, caller_id: str, book_id: int, document_id: int) -> Document:
        """
        Finalize an upload after the client PUT the object.

        Raises:
            NotFoundError: if the book or document does not exist, or the
                document belongs to another book
            ForbiddenError: if the caller does not own the book
            StorageError: if HEAD fails (ObjectNotFoundError when the object
                was never uploaded); the record is left untouched
            UploadInvalidationError: if the object does not match the record,
                or the record has already failed
        """
        await self.guard.resolve_owned_book(caller_id, book_id)
        document = await self._get_book_document(book_id, document_id)

        if document.is_failed:
            raise UploadInvalidationError(
                "document upload has already failed",
                reason=document.failure_reason,
            )

        head = await self.storage.head_object_async(document.object_key)
        reason = self.check_object(document, head)

        if document.is_uploaded:
            if reason is not None:
                self.logger.warning(
                    "Uploaded document no longer matches stored object",
                    document_id=document.id,
                    object_key=document.object_key,
                    reason=reason.value,
                )
            return document

        if reason is None:
            return await self._mark_uploaded(document)
        return await self._mark_failed(document, reason, head)

    async def _mark_uploaded(self, document: Document) -> Document:
        applied = await self.store.transition_status(
            document.id, DocumentStatus.PENDING, DocumentStatus.UPLOADED
        )
        current = await self.store.get(document.id)
        if current is None:
            raise NotFoundError("document not found", {"document_id": document.id})

        if not applied and current.is_failed:
            raise UploadInvalidationError(
                "document upload has already failed",
                reason=current.failure_reason,
            )

        self.logger.info(
            "Document upload completed",
            book_id=document.book_id,
            document_id=document.id,
            object_key=document.object_key,
            status=current.status.value,
        )
        return current

    async def _mark_failed(
        self, document: Document, reason: FailureReason, head: ObjectMetadata
    ) -> Document:
        cleanup = await self._cleanup_object(document)

        await self.store.transition_status(
            document.id,
            DocumentStatus.PENDING,
            DocumentStatus.FAILED,
            failure_reason=reason.value,
        )

        self.logger.warning(
            "Document upload rejected",
            book_id=document.book_id,
            document_id=document.id,
            object_key=document.object_key,
            reason=reason.value,
            declared_size=document.size_bytes,
            actual_size=head.size,
            declared_content_type=document.content_type,
            actual_content_type=head.content_type,
            cleanup=cleanup.to_dict(),
        )

        raise UploadInvalidationError(
            "document validation failed",
            reason=reason.value,
            cleanup=cleanup,
            details={
                "declared_size": document.size_bytes,
                "actual_size": head.size,
            },
        )
