"""
Unit tests for the OpenLibrary ISBN lookup client.

HTTP is served by httpx.MockTransport and backoff sleeps are recorded
instead of awaited.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

BASE = "https://openlibrary.test"
COVERS = "https://covers.openlibrary.test"
ISBN = "9780142437247"


class Router:
    """Minimal URL -> response table for MockTransport."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        responder = self.routes.get(url)
        if responder is None:
            return httpx.Response(404, json={"error": "notfound"})
        if isinstance(responder, list):
            responder = responder.pop(0) if len(responder) > 1 else responder[0]
        if callable(responder):
            return responder(request)
        return responder


def make_client(routes, sleep=None):
    from bookshelf.services.metadata_lookup import OpenLibraryClient

    router = Router(routes)
    client = OpenLibraryClient(
        base_url=BASE,
        covers_url=COVERS,
        timeout=1.0,
        max_retries=3,
        retry_delay=1.0,
        transport=httpx.MockTransport(router),
        sleep=sleep or AsyncMock(),
    )
    return client, router


EDITION_URL = f"{BASE}/isbn/{ISBN}.json"


class TestLookupIsbn:
    """Tests for successful lookups and field fallbacks."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_edition_fields(self):
        client, _ = make_client({
            EDITION_URL: httpx.Response(200, json={
                "title": "Moby Dick",
                "authors": [{"name": "Herman Melville"}],
                "publish_date": "March 5, 2003",
                "subjects": ["Whaling", "Sea stories"],
                "covers": [8231856],
            }),
        })

        metadata = await client.lookup_isbn("978-0-14-243724-7")

        assert metadata.title == "Moby Dick"
        assert metadata.author == "Herman Melville"
        assert metadata.published_year == "2003"
        assert metadata.genre == "Whaling"
        assert metadata.cover_url == f"{COVERS}/b/id/8231856-L.jpg"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_author_and_genre_from_work(self):
        """Test the author and genre fall back to the edition's first work."""
        client, router = make_client({
            EDITION_URL: httpx.Response(200, json={
                "title": "Moby Dick",
                "authors": [{"key": "/authors/OL1A"}],
                "works": [{"key": "/works/OL1W"}],
            }),
            f"{BASE}/works/OL1W.json": httpx.Response(200, json={
                "authors": [{"author": {"key": "/authors/OL1A"}}],
                "subjects": ["Classic literature"],
            }),
            f"{BASE}/authors/OL1A.json": httpx.Response(200, json={"name": "Herman Melville"}),
        })

        metadata = await client.lookup_isbn(ISBN)

        assert metadata.author == "Herman Melville"
        assert metadata.genre == "Classic literature"
        assert router.calls.count(f"{BASE}/works/OL1W.json") == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cover_falls_back_to_isbn_url(self):
        client, _ = make_client({
            EDITION_URL: httpx.Response(200, json={"title": "Moby Dick", "covers": [-1]}),
        })

        metadata = await client.lookup_isbn(ISBN)

        assert metadata.cover_url == f"{COVERS}/b/isbn/{ISBN}-L.jpg"
        assert metadata.author == ""
        assert metadata.published_year == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_secondary_fetch_failure_is_ignored(self):
        client, _ = make_client({
            EDITION_URL: httpx.Response(200, json={"title": "T", "works": [{"key": "/works/OL9W"}]}),
            f"{BASE}/works/OL9W.json": httpx.Response(503),
        })

        metadata = await client.lookup_isbn(ISBN)

        assert metadata.title == "T"
        assert metadata.author == ""
        assert metadata.genre == ""


class TestLookupRetries:
    """Tests for retry, backoff and error mapping."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_isbn_not_retried(self):
        from bookshelf.core.exceptions import NotFoundError

        sleep = AsyncMock()
        client, router = make_client({EDITION_URL: httpx.Response(404)}, sleep=sleep)

        with pytest.raises(NotFoundError, match="ISBN not found"):
            await client.lookup_isbn(ISBN)

        assert router.calls == [EDITION_URL]
        sleep.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_transient_failures_retried_with_linear_backoff(self):
        sleep = AsyncMock()
        client, router = make_client({
            EDITION_URL: [
                httpx.Response(500),
                httpx.Response(502),
                httpx.Response(200, json={"title": "Moby Dick"}),
            ],
        }, sleep=sleep)

        metadata = await client.lookup_isbn(ISBN)

        assert metadata.title == "Moby Dick"
        assert len(router.calls) == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_errors_exhaust_retries(self):
        from bookshelf.core.exceptions import ExternalServiceError

        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        sleep = AsyncMock()
        client, router = make_client({EDITION_URL: fail}, sleep=sleep)

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.lookup_isbn(ISBN)

        assert exc_info.value.details["service"] == "openlibrary"
        assert len(router.calls) == 3
        assert sleep.await_count == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_malformed_json_is_transient(self):
        client, router = make_client({
            EDITION_URL: [
                httpx.Response(200, content=b"<html>"),
                httpx.Response(200, json={"title": "Moby Dick"}),
            ],
        })

        metadata = await client.lookup_isbn(ISBN)

        assert metadata.title == "Moby Dick"
        assert len(router.calls) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancellation_during_backoff_propagates(self):
        sleep = AsyncMock(side_effect=asyncio.CancelledError())
        client, router = make_client({EDITION_URL: httpx.Response(500)}, sleep=sleep)

        with pytest.raises(asyncio.CancelledError):
            await client.lookup_isbn(ISBN)

        assert len(router.calls) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_isbn(self):
        from bookshelf.core.exceptions import NotFoundError

        client, router = make_client({})

        with pytest.raises(NotFoundError):
            await client.lookup_isbn("--")

        assert router.calls == []


class TestDownloadCover:
    """Tests for download_cover."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_download(self):
        url = f"{COVERS}/b/id/1-L.jpg"
        client, _ = make_client({
            url: httpx.Response(200, content=b"jpeg", headers={"content-type": "image/png"}),
        })

        content, content_type = await client.download_cover(url)

        assert content == b"jpeg"
        assert content_type == "image/png"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_content_type(self):
        url = f"{COVERS}/b/id/1-L.jpg"
        client, _ = make_client({url: httpx.Response(200, content=b"jpeg")})

        _, content_type = await client.download_cover(url)

        assert content_type == "image/jpeg"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_cover(self):
        from bookshelf.core.exceptions import ExternalServiceError

        client, _ = make_client({})

        with pytest.raises(ExternalServiceError):
            await client.download_cover(f"{COVERS}/b/id/404-L.jpg")


class TestParseYear:
    """Tests for parse_year."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1851", "1851"),
            ("October 18, 1851", "1851"),
            ("Oct 18, 1851", "1851"),
            ("1851-10-18", "1851"),
            ("c1992 printing", "1992"),
            ("unknown", ""),
            ("", ""),
        ],
    )
    def test_formats(self, value, expected):
        from bookshelf.services.metadata_lookup import parse_year

        assert parse_year(value) == expected
