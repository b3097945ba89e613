"""Error taxonomy for the query, pagination, and analytics engine.

Each error names the logical field or sub-operation that failed.  None of
them carry the underlying driver exception: the store layer logs it and
raises these outside its exception handler so nothing is chained.
Rendering a user-facing message is the caller's job.
"""

from __future__ import annotations

from typing import Any


class InvalidFilterError(ValueError):
    """Raised when a filter value is not a valid enum member or identifier."""

    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        self.field = field
        self.value = value
        self.reason = reason or "invalid value"
        super().__init__(f"Invalid filter '{field}': {self.reason} (got {value!r})")


class InvalidPaginationError(ValueError):
    """Raised when page or page size is not an integer in the allowed range."""

    def __init__(self, field: str, value: Any, reason: str = "") -> None:
        self.field = field
        self.value = value
        self.reason = reason or "invalid value"
        super().__init__(f"Invalid pagination '{field}': {self.reason} (got {value!r})")


class PersistenceError(RuntimeError):
    """Raised when the store fails or times out during a read.

    ``operation`` names the read (e.g. ``"listing.count"`` or
    ``"analytics.assignee_stats"``).  Analytics is all-or-nothing, so a
    single failed sub-aggregate surfaces as one of these for the whole report.
    """

    def __init__(self, operation: str, reason: str, *, timed_out: bool = False) -> None:
        self.operation = operation
        self.reason = reason
        self.timed_out = timed_out
        super().__init__(f"Store read '{operation}' failed: {reason}")
