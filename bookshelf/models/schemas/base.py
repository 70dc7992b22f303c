"""Base schemas and pagination models.

API payloads use camelCase on the wire; Python code uses snake_case.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class CamelModel(BaseModel):
    """Base for request/response schemas serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationParams(BaseModel):
    """Pagination parameters."""

    limit: int = Field(
        default=DEFAULT_LIMIT,
        ge=1,
        le=MAX_LIMIT,
        description="Items per page (max 100)",
    )
    offset: int = Field(
        default=0,
        ge=0,
        description="Number of items to skip",
    )

    @classmethod
    def normalize(cls, limit: Optional[int], offset: Optional[int]) -> "PaginationParams":
        """Apply defaults for missing values and clamp out-of-range ones."""
        if limit is None or limit <= 0:
            limit = DEFAULT_LIMIT
        limit = min(limit, MAX_LIMIT)
        if offset is None or offset < 0:
            offset = 0
        return cls(limit=limit, offset=offset)
