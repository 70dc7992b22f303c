"""Document schemas for API requests and responses."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from bookshelf.core.config import settings
from bookshelf.models.document import Document, DocumentStatus
from bookshelf.models.schemas.base import CamelModel
from bookshelf.models.schemas.validators import validate_filename


class DocumentPresignRequest(CamelModel):
    """Request a signed upload URL for a document."""

    size_bytes: int = Field(
        ...,
        ge=1,
        description="Exact size of the file in bytes",
        examples=[1048576],
    )
    checksum_sha256_hex: str = Field(
        ...,
        description="Lowercase hex SHA-256 digest of the file content",
        examples=["9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"],
    )
    content_type: str = Field(
        ...,
        description="MIME type of the file",
        examples=["application/pdf"],
    )
    filename: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Display name of the file",
        examples=["moby-dick.epub"],
    )

    @field_validator("content_type")
    @classmethod
    def validate_content_type(cls, v: str) -> str:
        if v not in settings.ALLOWED_DOCUMENT_CONTENT_TYPES:
            allowed = ", ".join(settings.ALLOWED_DOCUMENT_CONTENT_TYPES)
            raise ValueError(f"contentType must be one of: {allowed}")
        return v

    @field_validator("filename")
    @classmethod
    def validate_filename_field(cls, v: str) -> str:
        return validate_filename(v)


class DocumentResponse(CamelModel):
    """Document record as returned by the API."""

    id: int
    book_id: int
    filename: str
    object_key: str
    size_bytes: int
    checksum_sha256_hex: str
    content_type: str
    status: DocumentStatus
    failure_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            id=document.id,
            book_id=document.book_id,
            filename=document.filename,
            object_key=document.object_key,
            size_bytes=document.size_bytes,
            checksum_sha256_hex=document.checksum,
            content_type=document.content_type,
            status=document.status,
            failure_reason=document.failure_reason,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class DocumentPresignResponse(CamelModel):
    """Signed upload URL together with the pending document record."""

    document: DocumentResponse
    upload_url: str = Field(..., description="Signed URL to PUT the file to")
    upload_method: str = Field(default="PUT")
    expires_at: datetime = Field(..., description="When the upload URL stops working")


class DocumentList(CamelModel):
    """Documents attached to a book."""

    items: List[DocumentResponse]
    total: int = Field(..., description="Number of documents visible to the caller")
