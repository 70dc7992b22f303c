"""
Pytest configuration and fixtures for the test suite.

This module provides shared fixtures for unit and integration tests.
"""

import os
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from faker import Faker
from httpx import AsyncClient, ASGITransport

# Set test environment before importing bookshelf modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("S3_BUCKET_NAME", "test-bucket")
os.environ.setdefault("S3_REGION", "us-east-1")
os.environ.setdefault("S3_ACCESS_KEY_ID", "testing")
os.environ.setdefault("S3_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("PENDING_SWEEP_ENABLED", "false")

fake = Faker()

OWNER_ID = "user-owner"
OTHER_USER_ID = "user-other"


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (API)")
    config.addinivalue_line("markers", "api: API endpoint tests")
    config.addinivalue_line("markers", "db: Database tests")
    config.addinivalue_line("markers", "storage: Object storage tests")


# =============================================================================
# Test Data Generators
# =============================================================================

def sha256_hex(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def make_book(**overrides):
    """Build a Book domain model."""
    from bookshelf.models.book import Book

    now = datetime.now(timezone.utc)
    data = {
        "id": 1,
        "user_id": OWNER_ID,
        "title": fake.sentence(nb_words=3).rstrip("."),
        "author": fake.name(),
        "published_year": int(fake.year()),
        "isbn": "9780142437247",
        "genre": "Fiction",
        "cover_object_key": None,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return Book(**data)


def make_document(**overrides):
    """Build a Document domain model."""
    from bookshelf.models.document import Document, DocumentStatus

    checksum = overrides.pop("checksum", sha256_hex(fake.binary(length=64)))
    book_id = overrides.get("book_id", 1)
    now = datetime.now(timezone.utc)
    data = {
        "id": 10,
        "book_id": book_id,
        "user_id": OWNER_ID,
        "filename": fake.file_name(extension="pdf"),
        "object_key": f"book-{book_id}/{checksum}",
        "checksum": checksum,
        "size_bytes": 2048,
        "content_type": "application/pdf",
        "status": DocumentStatus.PENDING,
        "failure_reason": None,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return Document(**data)


@pytest.fixture
def book():
    return make_book()


@pytest.fixture
def pending_document():
    return make_document()


@pytest.fixture
def book_payload() -> Dict[str, Any]:
    """Request body for creating a book."""
    return {
        "title": "Moby Dick",
        "author": "Herman Melville",
        "publishedYear": "1851",
        "isbn": "978-0-14-243724-7",
        "genre": "Adventure",
    }


# =============================================================================
# Authentication Fixtures
# =============================================================================

@pytest.fixture
def owner_identity():
    from bookshelf.core.security import CallerIdentity

    return CallerIdentity(user_id=OWNER_ID, email=fake.email())


@pytest.fixture
def other_identity():
    from bookshelf.core.security import CallerIdentity

    return CallerIdentity(user_id=OTHER_USER_ID, email=fake.email())


# =============================================================================
# Mock Objects
# =============================================================================

@pytest.fixture
def mock_storage():
    """Create a mock StorageClient."""
    from bookshelf.core.storage_client import ObjectMetadata, PresignedRequest

    expires_at = datetime.now(timezone.utc) + timedelta(minutes=15)
    storage = Mock()
    storage.presign_put_async = AsyncMock(
        return_value=PresignedRequest(
            url="https://storage.test/upload?signature=abc", method="PUT", expires_at=expires_at
        )
    )
    storage.presign_get_async = AsyncMock(
        return_value=PresignedRequest(
            url="https://storage.test/download?signature=abc", method="GET", expires_at=expires_at
        )
    )
    storage.head_object_async = AsyncMock(
        return_value=ObjectMetadata(size=2048, content_type="application/pdf")
    )
    storage.delete_object_async = AsyncMock()
    storage.put_object_async = AsyncMock()
    storage.health_check = Mock(return_value=True)
    return storage


@pytest.fixture
def mock_book_store(book):
    """Create a mock BookStore that knows one book."""
    store = Mock()
    store.get = AsyncMock(side_effect=lambda book_id: book if book_id == book.id else None)
    store.create = AsyncMock()
    store.update = AsyncMock()
    store.delete = AsyncMock(return_value=True)
    store.list = AsyncMock(return_value=([book], 1))
    store.search = AsyncMock(return_value=([book], 1))
    return store


@pytest.fixture
def mock_document_store():
    """Create a mock DocumentStore."""
    store = Mock()
    store.get = AsyncMock(return_value=None)
    store.get_by_object_key = AsyncMock(return_value=None)
    store.upsert_pending = AsyncMock()
    store.transition_status = AsyncMock(return_value=True)
    store.delete = AsyncMock(return_value=True)
    store.delete_by_book = AsyncMock(return_value=0)
    store.list_by_book = AsyncMock(return_value=[])
    store.count_by_book = AsyncMock(return_value=0)
    store.list_stale_pending = AsyncMock(return_value=[])
    return store


@pytest.fixture
def mock_document_service():
    """Create a mock DocumentService."""
    service = Mock()
    service.presign_upload = AsyncMock()
    service.complete_upload = AsyncMock()
    service.get_document_meta = AsyncMock()
    service.list_by_book = AsyncMock()
    service.download = AsyncMock()
    service.delete_document = AsyncMock()
    return service


@pytest.fixture
def mock_book_service():
    """Create a mock BookService."""
    service = Mock()
    service.create = AsyncMock()
    service.get = AsyncMock()
    service.list = AsyncMock()
    service.search = AsyncMock()
    service.update = AsyncMock()
    service.delete = AsyncMock()
    service.lookup_isbn = AsyncMock()
    return service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Any, None]:
    """A DatabaseManager over a fresh SQLite file with tables created."""
    from bookshelf.core.db_client import DatabaseManager

    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'bookshelf.db'}")
    await manager.create_tables()
    yield manager
    await manager.close()


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Create a test FastAPI application instance."""
    # Import here to ensure test environment is set
    from bookshelf.main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def authenticate(app):
    """Return a helper that makes every request run as the given caller."""
    from bookshelf.core.security import get_current_user, get_optional_user

    def _authenticate(identity):
        app.dependency_overrides[get_current_user] = lambda: identity
        app.dependency_overrides[get_optional_user] = lambda: identity

    return _authenticate


@pytest.fixture
def override_services(app, mock_document_service, mock_book_service):
    """Route the API to the mock services."""
    from bookshelf.services.book.book_service import get_book_service
    from bookshelf.services.document import get_document_service

    app.dependency_overrides[get_document_service] = lambda: mock_document_service
    app.dependency_overrides[get_book_service] = lambda: mock_book_service
    return app


@pytest_asyncio.fixture
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


# =============================================================================
# Helper Functions
# =============================================================================

def create_auth_header(token: str) -> Dict[str, str]:
    """Create an authorization header with a bearer token."""
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def book_factory():
    """Factory for Book models; keyword arguments override defaults."""
    return make_book


@pytest.fixture
def document_factory():
    """Factory for Document models; keyword arguments override defaults."""
    return make_document
