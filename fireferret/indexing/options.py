"""
Query Options

Pydantic models for the options accepted by fetch / fetch_one / fetch_by_id,
and the pagination-to-range translation used by the key builder and the
document-store query.

    page=1, size=10 -> [0, 10)
    page=2, size=10 -> [10, 20)
    page=0          -> InvalidArgumentsError
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from fireferret.core.exceptions import InvalidArgumentsError


class PaginationOptions(BaseModel):
    """Page window; numeric strings are accepted ("2" -> 2)."""

    model_config = {"frozen": True}

    page: int = Field(..., ge=1, description="1-based page index")
    size: int = Field(..., ge=1, description="Documents per page")


class QueryOptions(BaseModel):
    """
    Per-call options.

    hydrate: Coerce "_id" back to ObjectId on cached reads
    stream: Return an async iterator of framed JSON chunks instead of a list
    pagination: Optional page window
    """

    model_config = {"frozen": True, "extra": "ignore"}

    hydrate: bool = Field(default=True, description="Coerce _id to ObjectId")
    stream: bool = Field(default=False, description="Stream framed JSON chunks")
    pagination: PaginationOptions | None = Field(default=None, description="Page window")


@dataclass(frozen=True)
class PaginationRange:
    """Half-open index range [start, end) of one page."""

    page: int
    size: int
    start: int
    end: int

    def as_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


def parse_options(options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
    """
    Validate caller options.

    Raises:
        InvalidArgumentsError: If options are not a mapping or fail validation
    """
    if options is None:
        return QueryOptions()
    if isinstance(options, QueryOptions):
        return options
    if not isinstance(options, Mapping):
        raise InvalidArgumentsError(
            "Options must be an object",
            scope="options::parse",
            details={"type": type(options).__name__},
        )

    try:
        return QueryOptions.model_validate(dict(options))
    except PydanticValidationError as e:
        raise InvalidArgumentsError(
            "Invalid query options",
            scope="options::parse",
            details={"errors": e.errors(include_url=False, include_input=False)},
        ) from e


def validate_pagination(options: QueryOptions | Mapping[str, Any] | None) -> PaginationRange | None:
    """
    Translate pagination options into a half-open range.

    Returns:
        PaginationRange, or None when no pagination was requested
    """
    pagination = parse_options(options).pagination
    if pagination is None:
        return None

    start = (pagination.page - 1) * pagination.size
    return PaginationRange(
        page=pagination.page,
        size=pagination.size,
        start=start,
        end=start + pagination.size,
    )
