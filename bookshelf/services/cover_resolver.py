"""Cover Resolver - content-addressed cover images keyed by normalized ISBN."""

from typing import Optional

from bookshelf.core.config import settings
from bookshelf.core.exceptions import StorageError
from bookshelf.core.logging import get_service_logger
from bookshelf.core.storage_client import StorageClient, get_cover_storage_client
from bookshelf.services.object_keys import derive_cover_key, normalize_isbn


class CoverResolver:
    """
    Resolves cover keys and signed cover URLs.

    Every lookup is best effort: a missing cover and a storage failure both
    resolve to None.
    """

    def __init__(self, storage: Optional[StorageClient] = None):
        self.storage = storage or get_cover_storage_client()
        self.expiration_minutes = settings.COVER_URL_EXPIRATION_MINUTES
        self.logger = get_service_logger("cover")

    async def resolve_cover_key(self, isbn: str) -> Optional[str]:
        """Return ``covers/{isbn}.jpg`` if such an object exists."""
        if not normalize_isbn(isbn):
            return None

        key = derive_cover_key(isbn)
        try:
            await self.storage.head_object_async(key)
            return key
        except StorageError as e:
            self.logger.debug("No cover for ISBN", object_key=key, error=str(e))
            return None

    async def cover_url(self, cover_object_key: Optional[str]) -> Optional[str]:
        """Signed GET URL for a stored cover key."""
        if not cover_object_key:
            return None
        try:
            presigned = await self.storage.presign_get_async(
                cover_object_key, self.expiration_minutes
            )
            return presigned.url
        except StorageError as e:
            self.logger.warning(
                "Failed to sign cover URL", object_key=cover_object_key, error=str(e)
            )
            return None

    async def resolve_cover_url(self, isbn: str) -> Optional[str]:
        """Signed URL for the cover of ``isbn`` when one exists in storage."""
        key = await self.resolve_cover_key(isbn)
        return await self.cover_url(key)

    async def upload_cover(self, isbn: str, content: bytes, content_type: str) -> str:
        """Store a cover image under the ISBN's key and return the key."""
        key = derive_cover_key(isbn)
        await self.storage.put_object_async(key, content, content_type)
        self.logger.info("Cover uploaded", object_key=key, size=len(content))
        return key
