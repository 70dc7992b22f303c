"""Ownership guard shared by document and book mutations."""

from bookshelf.core.exceptions import ForbiddenError, NotFoundError
from bookshelf.core.logging import get_service_logger
from bookshelf.models.book import Book


class OwnershipGuard:
    """Resolves a book and rejects callers that do not own it."""

    def __init__(self, book_store):
        self.book_store = book_store
        self.logger = get_service_logger("ownership")

    async def resolve_owned_book(self, caller_id: str, book_id: int) -> Book:
        """
        Return the book when ``caller_id`` owns it.

        Raises:
            NotFoundError: if the book does not exist
            ForbiddenError: if the book belongs to someone else
        """
        book = await self.book_store.get(book_id)
        if book is None:
            raise NotFoundError("book not found", {"book_id": book_id})

        if book.user_id != caller_id:
            self.logger.warning(
                "Ownership check failed",
                book_id=book_id,
                caller_id=caller_id,
            )
            raise ForbiddenError("you do not own this book", {"book_id": book_id})

        return book
