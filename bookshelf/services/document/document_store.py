"""
Document Record Store - persistence for document metadata.

Records are addressed by id and by object key. Status changes go through
``transition_status``, a conditional update that only succeeds from the
expected state, so concurrent completions cannot both win.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from bookshelf.core.db_client import DatabaseManager, db as default_db
from bookshelf.core.exceptions import AlreadyExistsError, DatabaseError
from bookshelf.core.logging import get_db_logger
from bookshelf.models.document import Document, DocumentStatus
from bookshelf.models.orm import DocumentModel


def _status_values(statuses: Optional[Iterable[DocumentStatus]]) -> Optional[List[str]]:
    if statuses is None:
        return None
    return [DocumentStatus(s).value for s in statuses]


class DocumentStore:
    """Async repository over the ``documents`` table."""

    def __init__(self, database: Optional[DatabaseManager] = None):
        self.db = database or default_db
        self.logger = get_db_logger()

    def _model_to_pydantic(self, model: DocumentModel) -> Document:
        """Convert SQLAlchemy model to Pydantic model."""
        return Document.model_validate(model)

    async def get(self, document_id: int) -> Optional[Document]:
        try:
            async with self.db.session() as session:
                model = await session.get(DocumentModel, document_id)
                return self._model_to_pydantic(model) if model else None
        except SQLAlchemyError as e:
            self.logger.error("Error retrieving document", document_id=document_id, error=str(e))
            raise DatabaseError(f"Failed to retrieve document: {e}")

    async def get_by_object_key(self, object_key: str) -> Optional[Document]:
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    select(DocumentModel).where(DocumentModel.object_key == object_key)
                )
                model = result.scalar_one_or_none()
                return self._model_to_pydantic(model) if model else None
        except SQLAlchemyError as e:
            self.logger.error("Error retrieving document by key", object_key=object_key, error=str(e))
            raise DatabaseError(f"Failed to retrieve document: {e}")

    async def upsert_pending(
        self,
        book_id: int,
        user_id: str,
        filename: str,
        object_key: str,
        checksum: str,
        size_bytes: int,
        content_type: str,
    ) -> Document:
        """
        Insert a pending record at ``object_key`` or reset an existing one.

        A pending or failed record at the key is overwritten in place and keeps
        its id. An uploaded record is never overwritten.

        Raises:
            AlreadyExistsError: if an uploaded record already holds the key
        """
        values = {
            "book_id": book_id,
            "user_id": user_id,
            "filename": filename,
            "checksum": checksum,
            "size_bytes": size_bytes,
            "content_type": content_type,
            "status": DocumentStatus.PENDING.value,
            "failure_reason": None,
        }

        try:
            async with self.db.session() as session:
                reset = await session.execute(
                    update(DocumentModel)
                    .where(
                        DocumentModel.object_key == object_key,
                        DocumentModel.status != DocumentStatus.UPLOADED.value,
                    )
                    .values(**values, updated_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )

                if reset.rowcount == 0:
                    existing = await session.execute(
                        select(DocumentModel.id).where(DocumentModel.object_key == object_key)
                    )
                    if existing.scalar_one_or_none() is not None:
                        raise AlreadyExistsError(details={"object_key": object_key})

                    session.add(DocumentModel(object_key=object_key, **values))
                    await session.flush()

                result = await session.execute(
                    select(DocumentModel).where(DocumentModel.object_key == object_key)
                )
                document = self._model_to_pydantic(result.scalar_one())

            self.logger.info(
                "Pending document record saved",
                document_id=document.id,
                book_id=book_id,
                object_key=object_key,
                replaced=reset.rowcount > 0,
            )
            return document

        except IntegrityError:
            # Lost an insert race at this key; reset the winning record instead
            self.logger.info("Concurrent insert at object key, retrying as update", object_key=object_key)
            return await self._reset_existing(object_key, values)
        except SQLAlchemyError as e:
            self.logger.error("Error saving pending document", object_key=object_key, error=str(e))
            raise DatabaseError(f"Failed to save document: {e}")

    async def _reset_existing(self, object_key: str, values: dict) -> Document:
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    update(DocumentModel)
                    .where(
                        DocumentModel.object_key == object_key,
                        DocumentModel.status != DocumentStatus.UPLOADED.value,
                    )
                    .values(**values, updated_at=datetime.now(timezone.utc))
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise AlreadyExistsError(details={"object_key": object_key})

                row = await session.execute(
                    select(DocumentModel).where(DocumentModel.object_key == object_key)
                )
                return self._model_to_pydantic(row.scalar_one())
        except SQLAlchemyError as e:
            self.logger.error("Error saving pending document", object_key=object_key, error=str(e))
            raise DatabaseError(f"Failed to save document: {e}")

    async def transition_status(
        self,
        document_id: int,
        from_status: DocumentStatus,
        to_status: DocumentStatus,
        failure_reason: Optional[str] = None,
        updated_before: Optional[datetime] = None,
    ) -> bool:
        """
        Move a document from ``from_status`` to ``to_status``.

        With ``updated_before`` the record must also not have been touched
        since that instant, so a record refreshed by a new presign is left alone.

        Returns:
            True if this call performed the transition, False if the record
            was not in ``from_status``, was updated since ``updated_before``,
            or no longer exists.
        """
        try:
            async with self.db.session() as session:
                stmt = update(DocumentModel).where(
                    DocumentModel.id == document_id,
                    DocumentModel.status == DocumentStatus(from_status).value,
                )
                if updated_before is not None:
                    stmt = stmt.where(DocumentModel.updated_at < updated_before)

                result = await session.execute(
                    stmt.values(
                        status=DocumentStatus(to_status).value,
                        failure_reason=failure_reason,
                        updated_at=datetime.now(timezone.utc),
                    )
                    .execution_options(synchronize_session=False)
                )
                changed = result.rowcount == 1

            self.logger.info(
                "Document status transition",
                document_id=document_id,
                from_status=DocumentStatus(from_status).value,
                to_status=DocumentStatus(to_status).value,
                failure_reason=failure_reason,
                applied=changed,
            )
            return changed

        except SQLAlchemyError as e:
            self.logger.error("Error updating document status", document_id=document_id, error=str(e))
            raise DatabaseError(f"Failed to update document status: {e}")

    async def delete(self, document_id: int) -> bool:
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    delete(DocumentModel).where(DocumentModel.id == document_id)
                )
                return result.rowcount > 0
        except SQLAlchemyError as e:
            self.logger.error("Error deleting document", document_id=document_id, error=str(e))
            raise DatabaseError(f"Failed to delete document: {e}")

    async def delete_by_book(self, book_id: int) -> int:
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    delete(DocumentModel).where(DocumentModel.book_id == book_id)
                )
                return result.rowcount
        except SQLAlchemyError as e:
            self.logger.error("Error deleting book documents", book_id=book_id, error=str(e))
            raise DatabaseError(f"Failed to delete documents: {e}")

    async def list_by_book(
        self,
        book_id: int,
        statuses: Optional[Iterable[DocumentStatus]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Document]:
        """List a book's documents, newest first, optionally filtered by status."""
        status_values = _status_values(statuses)
        try:
            async with self.db.session() as session:
                stmt = select(DocumentModel).where(DocumentModel.book_id == book_id)
                if status_values is not None:
                    stmt = stmt.where(DocumentModel.status.in_(status_values))

                stmt = stmt.order_by(DocumentModel.created_at.desc(), DocumentModel.id.desc())
                stmt = stmt.offset(offset)
                if limit is not None:
                    stmt = stmt.limit(limit)

                result = await session.execute(stmt)
                return [self._model_to_pydantic(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            self.logger.error("Error listing documents", book_id=book_id, error=str(e))
            raise DatabaseError(f"Failed to list documents: {e}")

    async def count_by_book(
        self,
        book_id: int,
        statuses: Optional[Iterable[DocumentStatus]] = None,
    ) -> int:
        status_values = _status_values(statuses)
        try:
            async with self.db.session() as session:
                stmt = select(func.count()).select_from(DocumentModel).where(
                    DocumentModel.book_id == book_id
                )
                if status_values is not None:
                    stmt = stmt.where(DocumentModel.status.in_(status_values))

                result = await session.execute(stmt)
                return result.scalar() or 0
        except SQLAlchemyError as e:
            self.logger.error("Error counting documents", book_id=book_id, error=str(e))
            raise DatabaseError(f"Failed to count documents: {e}")

    async def list_stale_pending(self, older_than: datetime, limit: int) -> List[Document]:
        """Pending records whose last update is before ``older_than``, oldest first."""
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    select(DocumentModel)
                    .where(
                        DocumentModel.status == DocumentStatus.PENDING.value,
                        DocumentModel.updated_at < older_than,
                    )
                    .order_by(DocumentModel.updated_at.asc())
                    .limit(limit)
                )
                return [self._model_to_pydantic(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            self.logger.error("Error listing stale pending documents", error=str(e))
            raise DatabaseError(f"Failed to list pending documents: {e}")
