from fastapi import APIRouter, Depends, Path, Query, Response, status

from bookshelf.core.logging import get_service_logger
from bookshelf.core.security import CallerIdentity, get_current_user
from bookshelf.models.schemas import (
    BookCreate,
    BookList,
    BookMetadata,
    BookResponse,
    BookUpdate,
    error_responses,
)
from bookshelf.models.schemas.base import DEFAULT_LIMIT, MAX_LIMIT
from bookshelf.services.book.book_service import BookService, get_book_service

logger = get_service_logger("book_api")

router = APIRouter(prefix="/books", tags=["Books"])


@router.get(
    "",
    response_model=BookList,
    summary="List Books",
    operation_id="listBooks",
    description="""List the catalog, newest first.

**Authentication:** none.

Each book carries a signed `coverUrl` when a cover image is stored for its ISBN.""",
)
async def list_books(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Page size"),
    offset: int = Query(0, ge=0, description="Items to skip"),
    book_service: BookService = Depends(get_book_service),
) -> BookList:
    """List books with pagination."""
    return await book_service.list(limit=limit, offset=offset)


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Book",
    operation_id="createBook",
    description="""Add a book to the catalog. The caller becomes its owner.

**Authentication Required:** Yes

`publishedYear` may be sent as a number or a numeric string. The ISBN is stored without dashes
or spaces, and the cover is linked automatically when `covers/{isbn}.jpg` exists in storage.

**Example Request:**
```json
{
  "title": "Moby Dick",
  "author": "Herman Melville",
  "publishedYear": "1851",
  "isbn": "978-0-14-243724-7",
  "genre": "Adventure"
}
```""",
    responses=error_responses(401, 422),
)
async def create_book(
    book: BookCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    book_service: BookService = Depends(get_book_service),
) -> BookResponse:
    """Create a book owned by the caller."""
    logger.info("Creating book", title=book.title, user_id=current_user.user_id)
    return await book_service.create(current_user.user_id, book)


@router.get(
    "/search",
    response_model=BookList,
    summary="Search Books",
    operation_id="searchBooks",
    description="""Case-insensitive search over title, author, ISBN and genre.

**Authentication:** none.""",
)
async def search_books(
    q: str = Query(..., min_length=1, description="Search text"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Page size"),
    offset: int = Query(0, ge=0, description="Items to skip"),
    book_service: BookService = Depends(get_book_service),
) -> BookList:
    """Search books by free text."""
    return await book_service.search(q, limit=limit, offset=offset)


@router.get(
    "/isbn/{isbn}",
    response_model=BookMetadata,
    summary="Look Up ISBN",
    operation_id="lookupIsbn",
    description="""Fetch title, author, year, genre and cover for an ISBN from OpenLibrary.

**Authentication:** none.

With `uploadCover=true` (default) the cover image is copied to `covers/{isbn}.jpg` so books created
with this ISBN link to it. Copy failures are ignored; the external cover URL is still returned.""",
    responses=error_responses(404, 502),
)
async def lookup_isbn(
    isbn: str = Path(..., min_length=1, description="ISBN-10 or ISBN-13"),
    upload_cover: bool = Query(True, alias="uploadCover", description="Mirror the cover image"),
    book_service: BookService = Depends(get_book_service),
) -> BookMetadata:
    """Look up book metadata for an ISBN."""
    return await book_service.lookup_isbn(isbn, upload_cover=upload_cover)


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get Book",
    operation_id="getBook",
    responses=error_responses(404),
)
async def get_book(
    book_id: int = Path(..., description="Book ID"),
    book_service: BookService = Depends(get_book_service),
) -> BookResponse:
    """Get a book by ID."""
    return await book_service.get(book_id)


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Update Book",
    operation_id="updateBook",
    description="""Replace a book's catalog fields.

**Authentication Required:** Yes; only the owner may update a book.

The cover link is re-derived from the ISBN and cannot be set directly.""",
    responses=error_responses(401, 403, 404, 422),
)
async def update_book(
    book: BookUpdate,
    book_id: int = Path(..., description="Book ID"),
    current_user: CallerIdentity = Depends(get_current_user),
    book_service: BookService = Depends(get_book_service),
) -> BookResponse:
    """Update a book owned by the caller."""
    logger.info("Updating book", book_id=book_id, user_id=current_user.user_id)
    return await book_service.update(current_user.user_id, book_id, book)


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Book",
    operation_id="deleteBook",
    description="""Delete a book together with its documents.

**Authentication Required:** Yes; only the owner may delete a book.""",
    responses=error_responses(401, 403, 404),
)
async def delete_book(
    book_id: int = Path(..., description="Book ID"),
    current_user: CallerIdentity = Depends(get_current_user),
    book_service: BookService = Depends(get_book_service),
) -> Response:
    """Delete a book owned by the caller."""
    logger.info("Deleting book", book_id=book_id, user_id=current_user.user_id)
    await book_service.delete(current_user.user_id, book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
