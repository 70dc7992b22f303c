"""Book Store - persistence for book catalog entries."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from bookshelf.core.db_client import DatabaseManager, db as default_db
from bookshelf.core.exceptions import DatabaseError
from bookshelf.core.logging import get_db_logger
from bookshelf.models.book import Book
from bookshelf.models.orm import BookModel

_UPDATABLE_FIELDS = {
    "title",
    "author",
    "published_year",
    "isbn",
    "genre",
    "cover_object_key",
}


class BookStore:
    """Async repository over the ``books`` table."""

    def __init__(self, database: Optional[DatabaseManager] = None):
        self.db = database or default_db
        self.logger = get_db_logger()

    def _model_to_pydantic(self, model: BookModel) -> Book:
        return Book.model_validate(model)

    async def create(
        self,
        user_id: str,
        title: str,
        author: str,
        published_year: int,
        isbn: str = "",
        genre: str = "",
        cover_object_key: Optional[str] = None,
    ) -> Book:
        try:
            async with self.db.session() as session:
                model = BookModel(
                    user_id=user_id,
                    title=title,
                    author=author,
                    published_year=published_year,
                    isbn=isbn,
                    genre=genre,
                    cover_object_key=cover_object_key,
                )
                session.add(model)
                await session.flush()
                await session.refresh(model)
                book = self._model_to_pydantic(model)

            self.logger.info("Book created", book_id=book.id, user_id=user_id)
            return book
        except SQLAlchemyError as e:
            self.logger.error("Error creating book", user_id=user_id, error=str(e))
            raise DatabaseError(f"Failed to create book: {e}")

    async def get(self, book_id: int) -> Optional[Book]:
        try:
            async with self.db.session() as session:
                model = await session.get(BookModel, book_id)
                return self._model_to_pydantic(model) if model else None
        except SQLAlchemyError as e:
            self.logger.error("Error retrieving book", book_id=book_id, error=str(e))
            raise DatabaseError(f"Failed to retrieve book: {e}")

    async def update(self, book_id: int, fields: Dict[str, Any]) -> Optional[Book]:
        """Apply ``fields`` to a book. Returns None if the book no longer exists."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update book fields: {sorted(unknown)}")

        try:
            async with self.db.session() as session:
                model = await session.get(BookModel, book_id)
                if model is None:
                    return None

                for name, value in fields.items():
                    setattr(model, name, value)
                model.updated_at = datetime.now(timezone.utc)

                await session.flush()
                await session.refresh(model)
                book = self._model_to_pydantic(model)

            self.logger.info("Book updated", book_id=book_id, fields=sorted(fields))
            return book
        except SQLAlchemyError as e:
            self.logger.error("Error updating book", book_id=book_id, error=str(e))
            raise DatabaseError(f"Failed to update book: {e}")

    async def delete(self, book_id: int) -> bool:
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    delete(BookModel).where(BookModel.id == book_id)
                )
                deleted = result.rowcount > 0

            if deleted:
                self.logger.info("Book deleted", book_id=book_id)
            return deleted
        except SQLAlchemyError as e:
            self.logger.error("Error deleting book", book_id=book_id, error=str(e))
            raise DatabaseError(f"Failed to delete book: {e}")

    async def list(self, limit: int, offset: int) -> Tuple[List[Book], int]:
        """Books newest first, with the total count."""
        return await self._paginate(select(BookModel), limit, offset)

    async def search(self, query: str, limit: int, offset: int) -> Tuple[List[Book], int]:
        """Case-insensitive substring match on title, author, isbn and genre."""
        pattern = f"%{query.strip()}%"
        stmt = select(BookModel).where(
            or_(
                BookModel.title.ilike(pattern),
                BookModel.author.ilike(pattern),
                BookModel.isbn.ilike(pattern),
                BookModel.genre.ilike(pattern),
            )
        )
        return await self._paginate(stmt, limit, offset)

    async def _paginate(self, stmt, limit: int, offset: int) -> Tuple[List[Book], int]:
        try:
            async with self.db.session() as session:
                count_stmt = select(func.count()).select_from(stmt.subquery())
                total = (await session.execute(count_stmt)).scalar() or 0

                stmt = stmt.order_by(BookModel.created_at.desc(), BookModel.id.desc())
                stmt = stmt.offset(offset).limit(limit)
                result = await session.execute(stmt)
                books = [self._model_to_pydantic(m) for m in result.scalars().all()]

            return books, total
        except SQLAlchemyError as e:
            self.logger.error("Error listing books", error=str(e))
            raise DatabaseError(f"Failed to list books: {e}")
