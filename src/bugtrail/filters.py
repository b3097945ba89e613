"""Filter normalization: raw request parameters -> canonical ``BugFilter``.

The HTTP and CLI layers hand over whatever the client sent; this module is
the one place that decides what a filter means.  Everything downstream
(listing, export, analytics) consumes the ``BugFilter`` and nothing else.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from bugtrail.db_base import VALID_BUG_TYPES, VALID_PRIORITIES, VALID_STATUSES
from bugtrail.errors import InvalidFilterError
from bugtrail.validation import is_valid_id

FILTER_KEYS = ("status", "priority", "type", "assignedTo", "reporter", "unassigned", "search")

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


@dataclass(frozen=True)
class BugFilter:
    """Canonical predicate.  Fields are ANDed; ``None`` means no constraint."""

    status: str | None = None
    priority: str | None = None
    type: str | None = None
    assignee_id: str | None = None
    reporter_id: str | None = None
    unassigned: bool = False
    search: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Only the constraints actually set, for logs and debugging."""
        return {k: v for k, v in asdict(self).items() if v not in (None, False)}

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()


def _present(raw: Mapping[str, Any], key: str) -> Any:
    value = raw.get(key)
    if value is None or value == "":
        return None
    return value


def _parse_bool(field: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise InvalidFilterError(field, value, "expected true or false")


def _enum(raw: Mapping[str, Any], key: str, valid: frozenset[str]) -> str | None:
    value = _present(raw, key)
    if value is None:
        return None
    if not isinstance(value, str) or value not in valid:
        raise InvalidFilterError(key, value, f"must be one of: {', '.join(sorted(valid))}")
    return value


def _identifier(raw: Mapping[str, Any], key: str) -> str | None:
    value = _present(raw, key)
    if value is None:
        return None
    if not is_valid_id(value):
        raise InvalidFilterError(key, value, "not a valid identifier")
    return str(value)


def normalize_filter(raw: Mapping[str, Any] | None) -> BugFilter:
    """Validate *raw* and turn it into a ``BugFilter``.

    Unrecognized keys (``page``, ``limit`` ...) are ignored, and empty strings
    count as absent.  ``unassigned=true`` discards ``assignedTo`` without
    validating it.  Search text is kept exactly as supplied unless it is blank.

    Raises:
        InvalidFilterError: an enumerated field is outside its set, an
            identifier is malformed, or ``unassigned`` is not a boolean.
    """
    raw = raw or {}

    unassigned_raw = _present(raw, "unassigned")
    unassigned = _parse_bool("unassigned", unassigned_raw) if unassigned_raw is not None else False

    search = _present(raw, "search")
    if search is not None:
        if not isinstance(search, str):
            raise InvalidFilterError("search", search, "must be a string")
        if not search.strip():
            search = None

    return BugFilter(
        status=_enum(raw, "status", VALID_STATUSES),
        priority=_enum(raw, "priority", VALID_PRIORITIES),
        type=_enum(raw, "type", VALID_BUG_TYPES),
        assignee_id=None if unassigned else _identifier(raw, "assignedTo"),
        reporter_id=_identifier(raw, "reporter"),
        unassigned=unassigned,
        search=search,
    )
