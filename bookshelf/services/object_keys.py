"""
Content-addressed object keys.

Document objects live at ``book-{bookId}/{sha256hex}`` and cover images at
``covers/{isbn}.jpg``. Both formats are stable; existing objects depend on them.
"""

import base64
import re

from bookshelf.core.exceptions import InvalidChecksumError

CHECKSUM_HEX_LENGTH = 64
COVER_KEY_PREFIX = "covers/"

_LOWER_HEX = re.compile(r"[0-9a-f]+")


def validate_checksum_hex(checksum_hex: str) -> str:
    """
    Validate a lowercase hex SHA-256 digest.

    The value is never normalized: uppercase input is rejected, not lowercased.

    Raises:
        InvalidChecksumError: if the value is not 64 lowercase hex characters
    """
    if not isinstance(checksum_hex, str):
        raise InvalidChecksumError("checksum must be a string")
    if checksum_hex != checksum_hex.lower():
        raise InvalidChecksumError("checksum must be lowercase hex")
    if len(checksum_hex) != CHECKSUM_HEX_LENGTH:
        raise InvalidChecksumError(
            f"checksum must be {CHECKSUM_HEX_LENGTH} hex characters"
        )
    if not _LOWER_HEX.fullmatch(checksum_hex):
        raise InvalidChecksumError("checksum must be valid hex")
    return checksum_hex


def to_binary_digest(checksum_hex: str) -> bytes:
    """Return the 32-byte digest for a validated checksum."""
    return bytes.fromhex(validate_checksum_hex(checksum_hex))


def to_base64_digest(checksum_hex: str) -> str:
    """Return the digest in the base64 form S3 expects for ChecksumSHA256."""
    return base64.b64encode(to_binary_digest(checksum_hex)).decode("ascii")


def derive_object_key(book_id: int, checksum_hex: str) -> str:
    return f"book-{book_id}/{checksum_hex}"


def normalize_isbn(isbn: str) -> str:
    """Strip dashes and spaces from an ISBN."""
    return (isbn or "").replace("-", "").replace(" ", "")


def derive_cover_key(isbn: str) -> str:
    return f"{COVER_KEY_PREFIX}{normalize_isbn(isbn)}.jpg"
