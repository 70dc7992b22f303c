"""Shared validator functions for Pydantic schemas."""

from typing import Optional

_DANGEROUS_FILENAME_CHARS = ["/", "\\", "\n", "\r", "\t", "\x00"]


def validate_filename(v: str) -> str:
    """Validate a client supplied display filename.

    The filename is never used for storage addressing, so only characters
    that break headers or paths are rejected.
    """
    if not v or not v.strip():
        raise ValueError("Filename cannot be empty")

    v = v.strip()
    if len(v) > 255:
        raise ValueError("Filename must be at most 255 characters")

    for char in _DANGEROUS_FILENAME_CHARS:
        if char in v:
            raise ValueError(f"Filename cannot contain {char!r}")

    return v


def parse_published_year(v) -> int:
    """Parse publishedYear which clients send as a string."""
    if isinstance(v, bool):
        raise ValueError("publishedYear must be numeric")
    if isinstance(v, int):
        return v
    try:
        return int(str(v).strip())
    except (TypeError, ValueError):
        raise ValueError("publishedYear must be numeric")


def validate_required_text(v: Optional[str], field_name: str) -> str:
    if v is None or not v.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return v.strip()
