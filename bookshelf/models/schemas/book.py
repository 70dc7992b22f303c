"""Book schemas for API requests and responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from bookshelf.models.book import Book
from bookshelf.models.schemas.base import CamelModel
from bookshelf.models.schemas.validators import (
    parse_published_year,
    validate_required_text,
)


class BookBase(CamelModel):
    """Catalog fields shared by create and update."""

    title: str = Field(..., min_length=1, max_length=500, examples=["Moby Dick"])
    author: str = Field(..., min_length=1, max_length=500, examples=["Herman Melville"])
    published_year: int = Field(
        ...,
        description="Year of publication; numeric strings are accepted",
        examples=["1851"],
    )
    isbn: str = Field(default="", max_length=32, examples=["978-0-14-243724-7"])
    genre: str = Field(default="", max_length=255, examples=["Adventure"])

    @field_validator("published_year", mode="before")
    @classmethod
    def validate_published_year(cls, v):
        return parse_published_year(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return validate_required_text(v, "title")

    @field_validator("author")
    @classmethod
    def validate_author(cls, v: str) -> str:
        return validate_required_text(v, "author")


class BookCreate(BookBase):
    """Schema for creating a book. Cover key is never client supplied."""

    pass


class BookUpdate(BookBase):
    """Schema for replacing a book's catalog fields."""

    pass


class BookResponse(CamelModel):
    """Book as returned by the API."""

    id: int
    user_id: str
    title: str
    author: str
    published_year: str
    isbn: str
    genre: str
    cover_object_key: Optional[str] = None
    cover_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_book(cls, book: Book, cover_url: Optional[str] = None) -> "BookResponse":
        return cls(
            id=book.id,
            user_id=book.user_id,
            title=book.title,
            author=book.author,
            published_year=str(book.published_year),
            isbn=book.isbn,
            genre=book.genre,
            cover_object_key=book.cover_object_key,
            cover_url=cover_url,
            created_at=book.created_at,
            updated_at=book.updated_at,
        )


class BookList(CamelModel):
    """Paginated list of books."""

    items: List[BookResponse]
    total: int


class BookMetadata(CamelModel):
    """Metadata found for an ISBN by the external lookup."""

    title: str
    author: str
    published_year: Optional[str] = None
    genre: Optional[str] = None
    cover_url: Optional[str] = None
    cover_object_key: Optional[str] = None
