"""
Document Query Service - metadata lookup and per-book listing.

Owners see every document of their book. Everyone else, including anonymous
callers, only sees documents whose upload completed.
"""

from typing import Optional

from bookshelf.core.exceptions import NotFoundError
from bookshelf.models.document import Document, DocumentStatus
from bookshelf.models.schemas import DocumentList, DocumentResponse, PaginationParams
from .document_base_service import DocumentBaseService

PUBLIC_STATUSES = (DocumentStatus.UPLOADED,)


class DocumentQueryService(DocumentBaseService):
    """Service for document queries."""

    async def get_document_meta(self, book_id: int, document_id: int) -> Document:
        """Return a document record scoped to its book."""
        return await self._get_book_document(book_id, document_id)

    async def list_by_book(
        self,
        caller_id: Optional[str],
        book_id: int,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> DocumentList:
        """
        List documents of a book visible to the caller.

        Args:
            caller_id: Authenticated caller, or None for anonymous access
            book_id: Book ID
            limit: Page size (default 20, max 100)
            offset: Items to skip

        Returns:
            Visible documents and the total number of visible documents

        Raises:
            NotFoundError: if the book does not exist
        """
        pagination = PaginationParams.normalize(limit, offset)

        book = await self.book_store.get(book_id)
        if book is None:
            raise NotFoundError("book not found", {"book_id": book_id})

        statuses = None if book.is_owned_by(caller_id) else PUBLIC_STATUSES

        documents = await self.store.list_by_book(
            book_id,
            statuses=statuses,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        total = await self.store.count_by_book(book_id, statuses=statuses)

        self.logger.debug(
            "Listed book documents",
            book_id=book_id,
            owner_view=statuses is None,
            returned=len(documents),
            total=total,
        )

        return DocumentList(
            items=[DocumentResponse.from_document(d) for d in documents],
            total=total,
        )
