from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Book(BaseModel):
    """Book catalog entry."""

    id: int
    user_id: str = Field(..., description="Owner")
    title: str
    author: str
    published_year: int
    isbn: str = ""
    genre: str = ""
    cover_object_key: Optional[str] = Field(
        None, description="covers/{isbn}.jpg when a cover exists in storage"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(from_attributes=True)

    def is_owned_by(self, user_id: Optional[str]) -> bool:
        return user_id is not None and self.user_id == user_id

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', user_id='{self.user_id}')>"
