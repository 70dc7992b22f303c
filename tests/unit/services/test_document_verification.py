"""
Unit tests for upload completion.

Covers the pending -> uploaded / failed state machine, cleanup of invalid
objects and races between concurrent completions.
"""

from unittest.mock import AsyncMock

import pytest

from bookshelf.core.storage_client import ObjectMetadata
from bookshelf.models.document import DocumentStatus, FailureReason


@pytest.fixture
def verification_service(mock_document_store, mock_book_store, mock_storage):
    from bookshelf.services.document.document_verification_service import (
        DocumentVerificationService,
    )

    return DocumentVerificationService(
        store=mock_document_store, book_store=mock_book_store, storage=mock_storage
    )


def store_holding(store, *versions):
    """Make store.get return each version of the record in turn."""
    store.get = AsyncMock(side_effect=list(versions))


class TestCheckObject:
    """Tests for the object/record comparison."""

    @pytest.mark.unit
    def test_match(self, verification_service, pending_document):
        head = ObjectMetadata(size=pending_document.size_bytes, content_type="application/pdf")

        assert verification_service.check_object(pending_document, head) is None

    @pytest.mark.unit
    def test_size_mismatch(self, verification_service, pending_document):
        head = ObjectMetadata(size=pending_document.size_bytes + 1, content_type="application/pdf")

        assert verification_service.check_object(pending_document, head) == FailureReason.SIZE_MISMATCH

    @pytest.mark.unit
    def test_size_exceeded(self, verification_service, document_factory):
        oversized = 20 * 1024 * 1024 + 1
        document = document_factory(size_bytes=oversized)
        head = ObjectMetadata(size=oversized, content_type="application/pdf")

        assert verification_service.check_object(document, head) == FailureReason.SIZE_EXCEEDED

    @pytest.mark.unit
    def test_content_type_mismatch(self, verification_service, pending_document):
        head = ObjectMetadata(size=pending_document.size_bytes, content_type="text/html")

        assert (
            verification_service.check_object(pending_document, head)
            == FailureReason.CONTENT_TYPE_MISMATCH
        )

    @pytest.mark.unit
    def test_missing_content_type_is_not_a_mismatch(self, verification_service, pending_document):
        head = ObjectMetadata(size=pending_document.size_bytes, content_type=None)

        assert verification_service.check_object(pending_document, head) is None


class TestCompleteUpload:
    """Tests for complete_upload."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_matching_object_marks_uploaded(
        self, verification_service, mock_document_store, mock_storage, pending_document
    ):
        uploaded = pending_document.model_copy(update={"status": DocumentStatus.UPLOADED})
        store_holding(mock_document_store, pending_document, uploaded)

        result = await verification_service.complete_upload("user-owner", 1, pending_document.id)

        assert result.status == DocumentStatus.UPLOADED
        mock_storage.head_object_async.assert_awaited_once_with(pending_document.object_key)
        mock_document_store.transition_status.assert_awaited_once_with(
            pending_document.id, DocumentStatus.PENDING, DocumentStatus.UPLOADED
        )
        mock_storage.delete_object_async.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_size_mismatch_fails_and_deletes_object(
        self, verification_service, mock_document_store, mock_storage, pending_document
    ):
        from bookshelf.core.exceptions import UploadInvalidationError

        store_holding(mock_document_store, pending_document)
        mock_storage.head_object_async.return_value = ObjectMetadata(
            size=pending_document.size_bytes * 2, content_type="application/pdf"
        )

        with pytest.raises(UploadInvalidationError) as exc_info:
            await verification_service.complete_upload("user-owner", 1, pending_document.id)

        error = exc_info.value
        assert error.reason == "size_mismatch"
        assert error.cleanup.attempted is True
        assert error.cleanup.succeeded is True
        assert error.details["actual_size"] == pending_document.size_bytes * 2
        mock_storage.delete_object_async.assert_awaited_once_with(pending_document.object_key)
        mock_document_store.transition_status.assert_awaited_once_with(
            pending_document.id,
            DocumentStatus.PENDING,
            DocumentStatus.FAILED,
            failure_reason="size_mismatch",
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_content_type_mismatch(
        self, verification_service, mock_document_store, mock_storage, pending_document
    ):
        from bookshelf.core.exceptions import UploadInvalidationError

        store_holding(mock_document_store, pending_document)
        mock_storage.head_object_async.return_value = ObjectMetadata(
            size=pending_document.size_bytes, content_type="application/zip"
        )

        with pytest.raises(UploadInvalidationError) as exc_info:
            await verification_service.complete_upload("user-owner", 1, pending_document.id)

        assert exc_info.value.reason == "content_type_mismatch"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cleanup_failure_is_reported(
        self, verification_service, mock_document_store, mock_storage, pending_document
    ):
        """Test a failed delete still fails the record and reports the cleanup error."""
        from bookshelf.core.exceptions import StorageError, UploadInvalidationError

        store_holding(mock_document_store, pending_document)
        mock_storage.head_object_async.return_value = ObjectMetadata(size=1, content_type="application/pdf")
        mock_storage.delete_object_async.side_effect = StorageError("delete denied")

        with pytest.raises(UploadInvalidationError) as exc_info:
            await verification_service.complete_upload("user-owner", 1, pending_document.id)

        cleanup = exc_info.value.cleanup
        assert cleanup.attempted is True
        assert cleanup.succeeded is False
        assert "delete denied" in cleanup.error
        assert exc_info.value.details["cleanup"]["succeeded"] is False
        mock_document_store.transition_status.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_object_not_uploaded_yet(
        self, verification_service, mock_document_store, mock_storage, pending_document
    ):
        """Test completing before the PUT leaves the record pending."""
        from bookshelf.core.exceptions import ObjectNotFoundError

        store_holding(mock_document_store, pending_document)
        mock_storage.head_object_async.side_effect = ObjectNotFoundError(
            "missing", object_key=pending_document.object_key
        )

        with pytest.raises(ObjectNotFoundError):
            await verification_service.complete_upload("user-owner", 1, pending_document.id)

        mock_document_store.transition_status.assert_not_awaited()
        mock_storage.delete_object_async.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_already_uploaded_is_returned_unchanged(
        self, verification_service, mock_document_store, mock_storage, document_factory
    ):
        uploaded = document_factory(status=DocumentStatus.UPLOADED)
        store_holding(mock_document_store, uploaded)

        result = await verification_service.complete_upload("user-owner", 1, uploaded.id)

        assert result == uploaded
        mock_document_store.transition_status.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_already_uploaded_never_downgraded(
        self, verification_service, mock_document_store, mock_storage, document_factory
    ):
        """Test an uploaded record is kept even if the stored object changed."""
        uploaded = document_factory(status=DocumentStatus.UPLOADED)
        store_holding(mock_document_store, uploaded)
        mock_storage.head_object_async.return_value = ObjectMetadata(size=1, content_type="text/plain")

        result = await verification_service.complete_upload("user-owner", 1, uploaded.id)

        assert result.status == DocumentStatus.UPLOADED
        mock_storage.delete_object_async.assert_not_awaited()
        mock_document_store.transition_status.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_record_is_terminal(
        self, verification_service, mock_document_store, mock_storage, document_factory
    ):
        from bookshelf.core.exceptions import UploadInvalidationError

        failed = document_factory(status=DocumentStatus.FAILED, failure_reason="size_mismatch")
        store_holding(mock_document_store, failed)

        with pytest.raises(UploadInvalidationError) as exc_info:
            await verification_service.complete_upload("user-owner", 1, failed.id)

        assert exc_info.value.reason == "size_mismatch"
        assert exc_info.value.cleanup.attempted is False
        mock_storage.head_object_async.assert_not_awaited()
        mock_document_store.transition_status.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_document_of_another_book(
        self, verification_service, mock_document_store, mock_book_store, document_factory, book_factory
    ):
        """Test a document is not found under a book it does not belong to."""
        from bookshelf.core.exceptions import NotFoundError

        other_book = book_factory(id=2)
        mock_book_store.get.side_effect = lambda book_id: other_book if book_id == 2 else None
        store_holding(mock_document_store, document_factory(book_id=1))

        with pytest.raises(NotFoundError):
            await verification_service.complete_upload("user-owner", 2, 10)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_owner_forbidden(
        self, verification_service, mock_document_store, mock_storage
    ):
        from bookshelf.core.exceptions import ForbiddenError

        with pytest.raises(ForbiddenError):
            await verification_service.complete_upload("someone-else", 1, 10)

        mock_document_store.get.assert_not_awaited()
        mock_storage.head_object_async.assert_not_awaited()


class TestConcurrentCompletion:
    """Tests for completions racing each other or the sweeper."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_lost_race_to_other_completion(
        self, verification_service, mock_document_store, pending_document
    ):
        """Test the loser of two successful completions returns the uploaded record."""
        uploaded = pending_document.model_copy(update={"status": DocumentStatus.UPLOADED})
        store_holding(mock_document_store, pending_document, uploaded)
        mock_document_store.transition_status.return_value = False

        result = await verification_service.complete_upload("user-owner", 1, pending_document.id)

        assert result.status == DocumentStatus.UPLOADED

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_lost_race_to_sweeper(
        self, verification_service, mock_document_store, pending_document
    ):
        """Test a record expired in between reports the failure."""
        from bookshelf.core.exceptions import UploadInvalidationError

        expired = pending_document.model_copy(
            update={"status": DocumentStatus.FAILED, "failure_reason": "upload_expired"}
        )
        store_holding(mock_document_store, pending_document, expired)
        mock_document_store.transition_status.return_value = False

        with pytest.raises(UploadInvalidationError) as exc_info:
            await verification_service.complete_upload("user-owner", 1, pending_document.id)

        assert exc_info.value.reason == "upload_expired"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_record_deleted_in_between(
        self, verification_service, mock_document_store, pending_document
    ):
        from bookshelf.core.exceptions import NotFoundError

        store_holding(mock_document_store, pending_document, None)
        mock_document_store.transition_status.return_value = False

        with pytest.raises(NotFoundError):
            await verification_service.complete_upload("user-owner", 1, pending_document.id)
