"""OpenAPI schema customization.

Provides custom OpenAPI schema with:
- Bearer token security scheme
- Tag descriptions
- Example request bodies
"""

from typing import Dict, Any
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from bookshelf.core.config import settings


def create_custom_openapi(app: FastAPI) -> Dict[str, Any]:
    """Create custom OpenAPI schema with authentication and examples.

    Args:
        app: FastAPI application instance

    Returns:
        Customized OpenAPI schema dictionary
    """
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        servers=app.servers,
        tags=get_tag_descriptions(),
    )

    components = openapi_schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["HTTPBearer"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
        "description": "RS256 token from the identity provider. Format: `Bearer <jwt>`.",
    }
    components["examples"] = get_openapi_examples()

    app.openapi_schema = openapi_schema
    return app.openapi_schema


def get_tag_descriptions() -> list:
    """Get OpenAPI tag descriptions."""
    max_mib = settings.MAX_DOCUMENT_SIZE_BYTES // (1024 * 1024)
    return [
        {
            "name": "Books",
            "description": """Book catalog.

Reads are public. Creating a book makes the caller its owner; only the owner may update or delete it.
Cover images are linked from `covers/{isbn}.jpg` when that object exists.""",
        },
        {
            "name": "Document Upload",
            "description": f"""Direct-to-storage document uploads.

**Supported Formats:** {", ".join(settings.ALLOWED_DOCUMENT_CONTENT_TYPES)}
**Max File Size:** {max_mib} MiB
**Storage Key:** `book-{{bookId}}/{{sha256}}`

Documents move from `pending` to `uploaded` or `failed`; both are terminal.""",
        },
        {
            "name": "Document Download",
            "description": "Redirects to short-lived signed download URLs.",
        },
        {
            "name": "Document Management",
            "description": """Listing, metadata and deletion.

Owners see documents in every status; everyone else sees only `uploaded` ones.""",
        },
        {
            "name": "Health",
            "description": """API health checks and status monitoring.

**Endpoints:**
- `/health` - Database and object storage check
- `/ready` - Kubernetes readiness probe
- `/live` - Kubernetes liveness probe""",
        },
    ]


def get_openapi_examples() -> Dict[str, Any]:
    """Get OpenAPI example request bodies."""
    return {
        "BookCreateRequest": {
            "summary": "Create a book",
            "value": {
                "title": "Moby Dick",
                "author": "Herman Melville",
                "publishedYear": "1851",
                "isbn": "978-0-14-243724-7",
                "genre": "Adventure",
            },
        },
        "DocumentPresignRequest": {
            "summary": "Request an upload URL",
            "value": {
                "sizeBytes": 1048576,
                "checksumSha256Hex": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
                "contentType": "application/pdf",
                "filename": "moby-dick.pdf",
            },
        },
        "ValidationErrorResponse": {
            "summary": "Upload failed verification",
            "value": {
                "error": {
                    "code": "UPLOAD_INVALID",
                    "message": "uploaded object does not match the declared size",
                    "error_id": "a1b2c3d4",
                    "details": {
                        "reason": "size_mismatch",
                        "cleanup": {"attempted": True, "succeeded": True, "error": None},
                    },
                }
            },
        },
    }
