"""FastAPI security dependencies.

Provides:
- HTTPBearer security scheme
- get_current_user dependency for mutating endpoints
- get_optional_user dependency for public reads
"""

from typing import Optional

from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from bookshelf.core.logging import get_auth_logger
from .tokens import CallerIdentity, identity_from_claims, verify_token

logger = get_auth_logger()

# Security scheme for authentication; missing headers are handled per dependency
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CallerIdentity:
    """
    Resolve the authenticated caller from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing bearer token")

    payload = verify_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    identity = identity_from_claims(payload)
    if identity is None:
        logger.error("Authentication failed: token has no subject")
        raise _unauthorized("Invalid token payload")

    return identity


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CallerIdentity]:
    """Resolve the caller when a valid token is present, otherwise None."""
    if credentials is None or not credentials.credentials:
        return None

    payload = verify_token(credentials.credentials)
    if not payload:
        return None
    return identity_from_claims(payload)
