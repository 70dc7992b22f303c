"""Bearer token verification against the identity provider's JWKS.

Tokens are issued by a third-party identity service and signed with
asymmetric keys. This module only verifies them; it never issues tokens.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient

from bookshelf.core.config import settings
from bookshelf.core.logging import get_auth_logger

logger = get_auth_logger()


@dataclass
class CallerIdentity:
    """Authenticated caller extracted from a verified token."""

    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


@lru_cache()
def get_jwks_client() -> Optional[PyJWKClient]:
    """Get the cached JWKS client, or None when no JWKS URL is configured."""
    if not settings.AUTH_JWKS_URL:
        logger.warning("AUTH_JWKS_URL is not configured; all bearer tokens will be rejected")
        return None
    return PyJWKClient(settings.AUTH_JWKS_URL, cache_keys=True)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a bearer token.

    Args:
        token: Encoded JWT from the Authorization header

    Returns:
        Decoded claims or None if the token is invalid
    """
    jwks_client = get_jwks_client()
    if jwks_client is None:
        return None

    options = {"require": ["exp", "sub"]}
    if not settings.AUTH_AUDIENCE:
        options["verify_aud"] = False

    try:
        signing_key = jwks_client.get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=settings.AUTH_ALGORITHMS,
            audience=settings.AUTH_AUDIENCE,
            issuer=settings.AUTH_ISSUER,
            leeway=settings.AUTH_LEEWAY_SECONDS,
            options=options,
        )
        logger.debug("Token verified successfully", user_id=payload.get("sub"))
        return payload

    except jwt.ExpiredSignatureError:
        logger.debug("Token verification failed: expired signature")
        return None
    except jwt.InvalidSignatureError:
        logger.warning(
            "Token verification failed: invalid signature - possible tampering attempt"
        )
        return None
    except jwt.PyJWKClientError as e:
        logger.warning("Token verification failed: signing key lookup", error=str(e))
        return None
    except jwt.InvalidTokenError as e:
        logger.warning("Token verification failed: invalid token", error=str(e))
        return None


def identity_from_claims(payload: Dict[str, Any]) -> Optional[CallerIdentity]:
    """Build a caller identity from verified claims; None when `sub` is empty."""
    user_id = payload.get("sub")
    if not user_id:
        return None
    return CallerIdentity(
        user_id=str(user_id),
        email=payload.get("email"),
        name=payload.get("name"),
        claims=payload,
    )
