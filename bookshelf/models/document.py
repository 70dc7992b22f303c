from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentStatus(str, Enum):
    """Upload status of a document. Both non-pending states are terminal."""

    PENDING = "pending"
    UPLOADED = "uploaded"
    FAILED = "failed"


class FailureReason(str, Enum):
    """Why a document ended in the failed state."""

    SIZE_MISMATCH = "size_mismatch"
    SIZE_EXCEEDED = "size_exceeded"
    CONTENT_TYPE_MISMATCH = "content_type_mismatch"
    UPLOAD_EXPIRED = "upload_expired"


class Document(BaseModel):
    """Document record attached to a book."""

    id: int = Field(..., description="Document identifier")
    book_id: int = Field(..., description="Owning book")
    user_id: str = Field(..., description="Uploader, always the owning book's owner")
    filename: str = Field(..., description="Client supplied display name")
    object_key: str = Field(..., description="book-{bookId}/{checksum}")
    checksum: str = Field(..., description="Lowercase hex SHA-256 of the content")
    size_bytes: int = Field(..., ge=0, description="Client declared size")
    content_type: str = Field(..., description="Client declared MIME type")
    status: DocumentStatus = Field(default=DocumentStatus.PENDING)
    failure_reason: Optional[str] = Field(None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_pending(self) -> bool:
        return self.status == DocumentStatus.PENDING

    @property
    def is_uploaded(self) -> bool:
        return self.status == DocumentStatus.UPLOADED

    @property
    def is_failed(self) -> bool:
        return self.status == DocumentStatus.FAILED

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, book_id={self.book_id}, object_key='{self.object_key}', status='{self.status.value}')>"
