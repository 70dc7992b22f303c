"""
ISBN metadata lookup against OpenLibrary.

Transient failures (network errors, 5xx, unexpected payloads) are retried
with linear backoff. A 404 means the ISBN is unknown and is not retried.
Cancellation of the calling task propagates immediately, including during
backoff sleeps.
"""

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from bookshelf.core.config import settings
from bookshelf.core.exceptions import ExternalServiceError, NotFoundError
from bookshelf.core.logging import get_service_logger
from bookshelf.services.object_keys import normalize_isbn

logger = get_service_logger("metadata_lookup")

SERVICE_NAME = "openlibrary"
DEFAULT_COVER_CONTENT_TYPE = "image/jpeg"

_YEAR_FORMATS = ["%Y", "%B %d, %Y", "%b %d, %Y", "%Y-%m-%d"]
_FOUR_DIGITS = re.compile(r"\d{4}")


@dataclass
class IsbnMetadata:
    title: str
    author: str = ""
    published_year: str = ""
    genre: str = ""
    cover_url: str = ""


class TransientLookupError(Exception):
    """A single lookup attempt failed in a way worth retrying."""


def parse_year(value: str) -> str:
    """Extract a year from OpenLibrary's free-form publish_date."""
    value = (value or "").strip()
    for fmt in _YEAR_FORMATS:
        try:
            return str(datetime.strptime(value, fmt).year)
        except ValueError:
            continue

    match = _FOUR_DIGITS.search(value)
    return match.group(0) if match else ""


class OpenLibraryClient:
    """Async OpenLibrary client with retry."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        covers_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = (base_url or settings.OPENLIBRARY_BASE_URL).rstrip("/")
        self.covers_url = (covers_url or settings.OPENLIBRARY_COVERS_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.METADATA_LOOKUP_TIMEOUT_SECONDS
        self.max_retries = max_retries if max_retries is not None else settings.METADATA_LOOKUP_MAX_RETRIES
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.METADATA_LOOKUP_RETRY_DELAY_SECONDS
        )
        self._transport = transport
        self._sleep = sleep
        self.logger = logger

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def lookup_isbn(self, isbn: str) -> IsbnMetadata:
        """
        Fetch metadata for an ISBN.

        Raises:
            NotFoundError: if OpenLibrary has no edition for the ISBN
            ExternalServiceError: if every attempt failed
        """
        clean_isbn = normalize_isbn(isbn)
        if not clean_isbn:
            raise NotFoundError("ISBN not found")

        last_error: Optional[Exception] = None
        async with self._client() as client:
            for attempt in range(self.max_retries):
                if attempt > 0:
                    await self._sleep(self.retry_delay * attempt)

                try:
                    return await self._lookup_once(client, clean_isbn)
                except TransientLookupError as e:
                    last_error = e
                    self.logger.warning(
                        "ISBN lookup attempt failed",
                        isbn=clean_isbn,
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        error=str(e),
                    )

        raise ExternalServiceError(
            f"failed to lookup ISBN after {self.max_retries} attempts: {last_error}",
            service=SERVICE_NAME,
        )

    async def _get_json(self, client: httpx.AsyncClient, url: str) -> Tuple[int, Dict[str, Any]]:
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise TransientLookupError(f"failed to fetch from OpenLibrary: {e}")

        if response.status_code != 200:
            return response.status_code, {}

        try:
            payload = response.json()
        except ValueError as e:
            raise TransientLookupError(f"failed to parse response: {e}")
        if not isinstance(payload, dict):
            raise TransientLookupError("unexpected response payload")
        return 200, payload

    async def _lookup_once(self, client: httpx.AsyncClient, isbn: str) -> IsbnMetadata:
        status_code, data = await self._get_json(client, f"{self.base_url}/isbn/{isbn}.json")
        if status_code == 404:
            raise NotFoundError("ISBN not found", {"isbn": isbn})
        if status_code != 200:
            raise TransientLookupError(f"unexpected status code: {status_code}")

        metadata = IsbnMetadata(title=data.get("title") or "")

        works = data.get("works") or []
        work_key = works[0].get("key") if works and isinstance(works[0], dict) else None
        work: Optional[Dict[str, Any]] = None

        authors = data.get("authors") or []
        if authors and isinstance(authors[0], dict) and authors[0].get("name"):
            metadata.author = authors[0]["name"]
        elif work_key:
            work = await self._fetch_optional(client, work_key)
            metadata.author = await self._author_from_work(client, work)

        if data.get("publish_date"):
            metadata.published_year = parse_year(data["publish_date"])

        subjects = data.get("subjects") or []
        if subjects:
            metadata.genre = str(subjects[0])
        elif work_key:
            if work is None:
                work = await self._fetch_optional(client, work_key)
            work_subjects = (work or {}).get("subjects") or []
            if work_subjects:
                metadata.genre = str(work_subjects[0])

        covers = [c for c in (data.get("covers") or []) if isinstance(c, int) and c > 0]
        if covers:
            metadata.cover_url = f"{self.covers_url}/b/id/{covers[0]}-L.jpg"
        else:
            metadata.cover_url = f"{self.covers_url}/b/isbn/{isbn}-L.jpg"

        self.logger.info("ISBN metadata found", isbn=isbn, title=metadata.title)
        return metadata

    async def _fetch_optional(self, client: httpx.AsyncClient, key: str) -> Optional[Dict[str, Any]]:
        """Fetch a work or author document; secondary lookups never fail the whole lookup."""
        try:
            status_code, payload = await self._get_json(client, f"{self.base_url}{key}.json")
        except TransientLookupError as e:
            self.logger.debug("Secondary OpenLibrary fetch failed", key=key, error=str(e))
            return None
        return payload if status_code == 200 else None

    async def _author_from_work(self, client: httpx.AsyncClient, work: Optional[Dict[str, Any]]) -> str:
        authors: List[Dict[str, Any]] = (work or {}).get("authors") or []
        if not authors:
            return ""
        author_key = (authors[0].get("author") or {}).get("key")
        if not author_key:
            return ""
        author = await self._fetch_optional(client, author_key)
        return (author or {}).get("name") or ""

    async def download_cover(self, cover_url: str) -> Tuple[bytes, str]:
        """
        Download a cover image.

        Returns:
            Tuple of (content, content_type)
        """
        try:
            async with self._client() as client:
                response = await client.get(cover_url)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"failed to download cover: {e}", service=SERVICE_NAME)

        if response.status_code != 200:
            raise ExternalServiceError(
                f"unexpected status code: {response.status_code}", service=SERVICE_NAME
            )

        content_type = response.headers.get("content-type") or DEFAULT_COVER_CONTENT_TYPE
        return response.content, content_type
