"""
Document Upload Service - presigned direct-to-storage uploads.

Issues signed PUT URLs bound to the declared content type and SHA-256
digest, after enforcing ownership, the size limit and checksum format, and
deduplicating by content-addressed object key.
"""

from dataclasses import dataclass
from datetime import datetime

from bookshelf.core.exceptions import (
    AlreadyExistsError,
    SizeExceededError,
    ValidationError,
)
from bookshelf.models.document import Document
from bookshelf.services.object_keys import (
    derive_object_key,
    to_base64_digest,
    validate_checksum_hex,
)
from .document_base_service import DocumentBaseService


@dataclass
class PresignResult:
    document: Document
    upload_url: str
    upload_method: str
    expires_at: datetime


class DocumentUploadService(DocumentBaseService):
    """Service for issuing signed upload URLs."""

    async def presign_upload(
        self,
        caller_id: str,
        book_id: int,
        size_bytes: int,
        checksum_hex: str,
        content_type: str,
        filename: str,
    ) -> PresignResult:
        """
        Issue a signed PUT URL and record the document as pending.

        Raises:
            NotFoundError: if the book does not exist
            ForbiddenError: if the caller does not own the book
            SizeExceededError: if ``size_bytes`` is above the maximum
            InvalidChecksumError: if the checksum is not 64 lowercase hex chars
            AlreadyExistsError: if identical content is already uploaded
            StorageError: if the URL could not be signed
        """
        self.logger.info(
            "Presign upload requested",
            book_id=book_id,
            caller_id=caller_id,
            size_bytes=size_bytes,
            content_type=content_type,
        )

        await self.guard.resolve_owned_book(caller_id, book_id)

        if size_bytes > self.max_size_bytes:
            raise SizeExceededError(size_bytes, self.max_size_bytes)
        if size_bytes <= 0:
            raise ValidationError("document size must be positive", {"size_bytes": size_bytes})

        validate_checksum_hex(checksum_hex)
        object_key = derive_object_key(book_id, checksum_hex)

        existing = await self.store.get_by_object_key(object_key)
        if existing is not None and existing.is_uploaded:
            raise AlreadyExistsError(
                details={"object_key": object_key, "document_id": existing.id}
            )

        presigned = await self.storage.presign_put_async(
            object_key,
            content_type,
            to_base64_digest(checksum_hex),
            self.upload_url_minutes,
        )

        document = await self.store.upsert_pending(
            book_id=book_id,
            user_id=caller_id,
            filename=filename,
            object_key=object_key,
            checksum=checksum_hex,
            size_bytes=size_bytes,
            content_type=content_type,
        )

        self.logger.info(
            "Upload URL issued",
            book_id=book_id,
            document_id=document.id,
            object_key=object_key,
            expires_at=presigned.expires_at.isoformat(),
        )

        return PresignResult(
            document=document,
            upload_url=presigned.url,
            upload_method=presigned.method,
            expires_at=presigned.expires_at,
        )
