import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from bookshelf.core.config import settings
from bookshelf.core.exceptions import ObjectNotFoundError, StorageError
from bookshelf.core.logging import get_service_logger

logger = get_service_logger("storage_client")

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass
class PresignedRequest:
    """A signed URL together with the HTTP method it authorizes."""

    url: str
    method: str
    expires_at: datetime


@dataclass
class ObjectMetadata:
    """What the object store reports for an existing object."""

    size: int
    content_type: Optional[str] = None


def _is_missing(error: ClientError) -> bool:
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _MISSING_OBJECT_CODES or status == 404


class StorageClient:
    """S3-compatible object storage client (Cloudflare R2 in deployment)."""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ):
        self.logger = logger
        self._bucket_name = bucket_name or settings.S3_BUCKET_NAME
        self._endpoint_url = endpoint_url or settings.s3_endpoint_url
        self._region_name = region_name or settings.S3_REGION
        self._access_key_id = access_key_id or settings.S3_ACCESS_KEY_ID
        self._secret_access_key = secret_access_key or settings.S3_SECRET_ACCESS_KEY
        self._client = None
        self._initialized = False
        self._initialization_error: Optional[str] = None

        try:
            self._initialize_client()
        except Exception as e:
            self.logger.warning(
                "Storage client initialization failed, will operate in disabled mode",
                error=str(e),
            )
            self._initialization_error = str(e)

    def _initialize_client(self) -> None:
        """Build the boto3 client. No network calls are made here."""
        self._client = boto3.client(
            "s3",
            endpoint_url=self._endpoint_url,
            region_name=self._region_name,
            aws_access_key_id=self._access_key_id,
            aws_secret_access_key=self._secret_access_key,
            config=Config(signature_version="s3v4"),
        )
        self._initialized = True
        self.logger.info(
            "Storage client configured",
            bucket=self._bucket_name,
            endpoint=self._endpoint_url,
            region=self._region_name,
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def initialization_error(self) -> Optional[str]:
        return self._initialization_error

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    @property
    def client(self):
        """Get the underlying boto3 S3 client."""
        self._ensure_initialized()
        return self._client

    def _ensure_initialized(self) -> None:
        """Ensure the client is initialized, raise error if not."""
        if not self._initialized:
            error_msg = "Storage client is not initialized"
            if self._initialization_error:
                error_msg += f": {self._initialization_error}"
            else:
                error_msg += ". Please configure S3_ENDPOINT_URL or R2_ACCOUNT_ID and credentials."
            raise StorageError(error_msg)

    def presign_put(
        self,
        key: str,
        content_type: str,
        checksum_sha256_b64: str,
        expiration_minutes: int,
    ) -> PresignedRequest:
        """
        Generate a signed PUT URL bound to content type and SHA-256 digest.

        Args:
            key: Object key
            content_type: MIME type the uploader must send
            checksum_sha256_b64: Base64 SHA-256 digest the uploader must send
            expiration_minutes: URL lifetime

        Returns:
            PresignedRequest with url, method and expiry
        """
        self._ensure_initialized()
        try:
            expires_at = datetime.now(timezone.utc) + timedelta(minutes=expiration_minutes)
            url = self._client.generate_presigned_url(
                ClientMethod="put_object",
                Params={
                    "Bucket": self._bucket_name,
                    "Key": key,
                    "ContentType": content_type,
                    "ChecksumSHA256": checksum_sha256_b64,
                },
                ExpiresIn=expiration_minutes * 60,
                HttpMethod="PUT",
            )

            self.logger.debug("Generated signed upload URL", object_key=key)
            return PresignedRequest(url=url, method="PUT", expires_at=expires_at)

        except (BotoCoreError, ClientError) as e:
            self.logger.error(
                "Failed to generate signed upload URL", object_key=key, error=str(e)
            )
            raise StorageError(f"Failed to generate upload URL: {e}")

    def presign_get(self, key: str, expiration_minutes: int) -> PresignedRequest:
        """Generate a signed GET URL for an object."""
        self._ensure_initialized()
        try:
            expires_at = datetime.now(timezone.utc) + timedelta(minutes=expiration_minutes)
            url = self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self._bucket_name, "Key": key},
                ExpiresIn=expiration_minutes * 60,
            )

            self.logger.debug("Generated signed download URL", object_key=key)
            return PresignedRequest(url=url, method="GET", expires_at=expires_at)

        except (BotoCoreError, ClientError) as e:
            self.logger.error(
                "Failed to generate signed download URL", object_key=key, error=str(e)
            )
            raise StorageError(f"Failed to generate download URL: {e}")

    def head_object(self, key: str) -> ObjectMetadata:
        """
        Fetch size and content type of an object.

        Raises:
            ObjectNotFoundError: when the object does not exist
            StorageError: on any other storage failure
        """
        self._ensure_initialized()
        try:
            response = self._client.head_object(Bucket=self._bucket_name, Key=key)
        except ClientError as e:
            if _is_missing(e):
                raise ObjectNotFoundError(f"Object not found: {key}", object_key=key)
            self.logger.error("Failed to head object", object_key=key, error=str(e))
            raise StorageError(f"Failed to head object: {e}")
        except BotoCoreError as e:
            self.logger.error("Failed to head object", object_key=key, error=str(e))
            raise StorageError(f"Failed to head object: {e}")

        return ObjectMetadata(
            size=int(response.get("ContentLength", 0)),
            content_type=response.get("ContentType") or None,
        )

    def delete_object(self, key: str) -> None:
        """Delete an object. Deleting a missing key succeeds."""
        self._ensure_initialized()
        try:
            self._client.delete_object(Bucket=self._bucket_name, Key=key)
            self.logger.info("Deleted object", object_key=key)
        except (BotoCoreError, ClientError) as e:
            self.logger.error("Failed to delete object", object_key=key, error=str(e))
            raise StorageError(f"Failed to delete object: {e}")

    def put_object(self, key: str, content: bytes, content_type: str) -> None:
        """Upload bytes directly (used for cover images only)."""
        self._ensure_initialized()
        try:
            self._client.put_object(
                Bucket=self._bucket_name,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
            self.logger.info("Uploaded object", object_key=key, size=len(content))
        except (BotoCoreError, ClientError) as e:
            self.logger.error("Failed to upload object", object_key=key, error=str(e))
            raise StorageError(f"Failed to upload object: {e}")

    # Async versions for use in request handlers
    async def presign_put_async(
        self,
        key: str,
        content_type: str,
        checksum_sha256_b64: str,
        expiration_minutes: int,
    ) -> PresignedRequest:
        return await asyncio.to_thread(
            self.presign_put, key, content_type, checksum_sha256_b64, expiration_minutes
        )

    async def presign_get_async(self, key: str, expiration_minutes: int) -> PresignedRequest:
        return await asyncio.to_thread(self.presign_get, key, expiration_minutes)

    async def head_object_async(self, key: str) -> ObjectMetadata:
        return await asyncio.to_thread(self.head_object, key)

    async def delete_object_async(self, key: str) -> None:
        await asyncio.to_thread(self.delete_object, key)

    async def put_object_async(self, key: str, content: bytes, content_type: str) -> None:
        await asyncio.to_thread(self.put_object, key, content, content_type)

    def health_check(self) -> bool:
        """
        Check if the bucket is reachable.

        Returns:
            True if healthy, False otherwise
        """
        if not self._initialized:
            return False

        try:
            self._client.head_bucket(Bucket=self._bucket_name)
            return True
        except Exception as e:
            self.logger.error("Storage health check failed", error=str(e))
            return False


@lru_cache()
def get_storage_client() -> StorageClient:
    """Get singleton client for the document bucket."""
    return StorageClient()


@lru_cache()
def get_cover_storage_client() -> StorageClient:
    """Get singleton client for the cover bucket."""
    return StorageClient(bucket_name=settings.cover_bucket_name)
