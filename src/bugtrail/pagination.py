"""Page requests and the pagination envelope."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from bugtrail.errors import InvalidPaginationError
from bugtrail.types.api import PaginationEnvelope

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
COMMENT_PAGE_SIZE = 20


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise InvalidPaginationError("page", self.page, "must be an integer >= 1")
        if (
            isinstance(self.page_size, bool)
            or not isinstance(self.page_size, int)
            or not (1 <= self.page_size <= MAX_PAGE_SIZE)
        ):
            raise InvalidPaginationError("limit", self.page_size, f"must be an integer between 1 and {MAX_PAGE_SIZE}")

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size


def paginate(total_count: int, page: int, page_size: int) -> PaginationEnvelope:
    """Build the envelope for *page* of a result set of *total_count* records.

    An empty result still has one (empty) page.  Pages past the end are
    reported as requested, not clamped.
    """
    total_pages = max(1, math.ceil(total_count / page_size))
    return PaginationEnvelope(
        current_page=page,
        total_pages=total_pages,
        total_count=total_count,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def _parse_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidPaginationError(field, value, "must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidPaginationError(field, value, "must be an integer")


def parse_pagination(raw: Mapping[str, Any] | None, *, default_page_size: int = DEFAULT_PAGE_SIZE) -> PageRequest:
    """Read ``page`` and ``limit`` (or its alias ``pageSize``) from *raw*.

    ``limit`` wins when both spellings are present.  Missing or empty values
    fall back to page 1 and *default_page_size*.
    """
    raw = raw or {}
    page_raw = raw.get("page")
    page = 1 if page_raw in (None, "") else _parse_int("page", page_raw)

    size_field = "limit"
    size_raw = raw.get("limit")
    if size_raw in (None, ""):
        size_field = "pageSize"
        size_raw = raw.get("pageSize")
    page_size = default_page_size if size_raw in (None, "") else _parse_int(size_field, size_raw)

    if page < 1:
        raise InvalidPaginationError("page", page_raw, "must be >= 1")
    if not (1 <= page_size <= MAX_PAGE_SIZE):
        raise InvalidPaginationError(size_field, size_raw, f"must be between 1 and {MAX_PAGE_SIZE}")
    return PageRequest(page=page, page_size=page_size)
