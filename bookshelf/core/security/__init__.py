"""Security module for authentication.

This module provides:
- Bearer token verification against the identity provider's JWKS
- FastAPI security dependencies

Usage:
    from bookshelf.core.security import (
        CallerIdentity,
        get_current_user,
        get_optional_user,
    )
"""

from .tokens import (
    CallerIdentity,
    get_jwks_client,
    verify_token,
    identity_from_claims,
)

from .dependencies import (
    security,
    get_current_user,
    get_optional_user,
)

__all__ = [
    "CallerIdentity",
    "get_jwks_client",
    "verify_token",
    "identity_from_claims",
    "security",
    "get_current_user",
    "get_optional_user",
]
