"""
Book Service - catalog operations.

Reads are public. Updates and deletes go through the ownership guard first.
The cover key is always derived from the stored ISBN and an existence probe
in storage; clients cannot set it.
"""

from typing import List, Optional

from bookshelf.core.exceptions import BookshelfError, NotFoundError, StorageError
from bookshelf.core.logging import get_service_logger
from bookshelf.core.storage_client import StorageClient, get_storage_client
from bookshelf.models.book import Book
from bookshelf.models.schemas import (
    BookCreate,
    BookList,
    BookMetadata,
    BookResponse,
    BookUpdate,
    PaginationParams,
)
from bookshelf.services.cover_resolver import CoverResolver
from bookshelf.services.document.document_store import DocumentStore
from bookshelf.services.metadata_lookup import OpenLibraryClient
from bookshelf.services.object_keys import normalize_isbn
from bookshelf.services.ownership import OwnershipGuard
from .book_store import BookStore


class BookService:
    """Service for book catalog operations."""

    def __init__(
        self,
        book_store: Optional[BookStore] = None,
        document_store: Optional[DocumentStore] = None,
        storage: Optional[StorageClient] = None,
        covers: Optional[CoverResolver] = None,
        metadata_client: Optional[OpenLibraryClient] = None,
    ):
        self.logger = get_service_logger("book")
        self.book_store = book_store or BookStore()
        self.document_store = document_store or DocumentStore()
        self.storage = storage or get_storage_client()
        self.covers = covers or CoverResolver()
        self.metadata_client = metadata_client or OpenLibraryClient()
        self.guard = OwnershipGuard(self.book_store)

    async def _to_response(self, book: Book) -> BookResponse:
        cover_url = await self.covers.cover_url(book.cover_object_key)
        return BookResponse.from_book(book, cover_url=cover_url)

    async def _to_list(self, books: List[Book], total: int) -> BookList:
        items = [await self._to_response(book) for book in books]
        return BookList(items=items, total=total)

    async def create(self, caller_id: str, data: BookCreate) -> BookResponse:
        isbn = normalize_isbn(data.isbn)
        cover_key = await self.covers.resolve_cover_key(isbn)

        book = await self.book_store.create(
            user_id=caller_id,
            title=data.title,
            author=data.author,
            published_year=data.published_year,
            isbn=isbn,
            genre=data.genre,
            cover_object_key=cover_key,
        )
        self.logger.info("Book created", book_id=book.id, user_id=caller_id, has_cover=bool(cover_key))
        return await self._to_response(book)

    async def get(self, book_id: int) -> BookResponse:
        book = await self.book_store.get(book_id)
        if book is None:
            raise NotFoundError("book not found", {"book_id": book_id})
        return await self._to_response(book)

    async def list(self, limit: Optional[int] = None, offset: Optional[int] = None) -> BookList:
        pagination = PaginationParams.normalize(limit, offset)
        books, total = await self.book_store.list(pagination.limit, pagination.offset)
        return await self._to_list(books, total)

    async def search(
        self, query: str, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> BookList:
        pagination = PaginationParams.normalize(limit, offset)
        books, total = await self.book_store.search(query, pagination.limit, pagination.offset)
        return await self._to_list(books, total)

    async def update(self, caller_id: str, book_id: int, data: BookUpdate) -> BookResponse:
        await self.guard.resolve_owned_book(caller_id, book_id)

        isbn = normalize_isbn(data.isbn)
        cover_key = await self.covers.resolve_cover_key(isbn)

        book = await self.book_store.update(
            book_id,
            {
                "title": data.title,
                "author": data.author,
                "published_year": data.published_year,
                "isbn": isbn,
                "genre": data.genre,
                "cover_object_key": cover_key,
            },
        )
        if book is None:
            raise NotFoundError("book not found", {"book_id": book_id})
        return await self._to_response(book)

    async def delete(self, caller_id: str, book_id: int) -> None:
        """Delete a book with its documents. Object removal is best effort."""
        await self.guard.resolve_owned_book(caller_id, book_id)

        documents = await self.document_store.list_by_book(book_id)
        for document in documents:
            try:
                await self.storage.delete_object_async(document.object_key)
            except StorageError as e:
                self.logger.warning(
                    "Failed to delete document object with book",
                    book_id=book_id,
                    document_id=document.id,
                    object_key=document.object_key,
                    error=str(e),
                )

        await self.document_store.delete_by_book(book_id)
        deleted = await self.book_store.delete(book_id)
        if not deleted:
            raise NotFoundError("book not found", {"book_id": book_id})

        self.logger.info("Book deleted", book_id=book_id, documents=len(documents))

    async def lookup_isbn(self, isbn: str, upload_cover: bool = True) -> BookMetadata:
        """
        Look up metadata for an ISBN and optionally mirror its cover.

        A failed cover download or upload is ignored; the external cover
        URL is still returned.
        """
        metadata = await self.metadata_client.lookup_isbn(isbn)

        result = BookMetadata(
            title=metadata.title,
            author=metadata.author,
            published_year=metadata.published_year or None,
            genre=metadata.genre or None,
            cover_url=metadata.cover_url or None,
        )

        if upload_cover and metadata.cover_url:
            try:
                content, content_type = await self.metadata_client.download_cover(metadata.cover_url)
                result.cover_object_key = await self.covers.upload_cover(isbn, content, content_type)
            except BookshelfError as e:
                self.logger.warning("Cover mirroring skipped", isbn=normalize_isbn(isbn), error=str(e))

        return result


_book_service: Optional[BookService] = None


def get_book_service() -> BookService:
    """FastAPI dependency returning the process-wide book service."""
    global _book_service
    if _book_service is None:
        _book_service = BookService()
    return _book_service
