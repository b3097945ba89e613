"""Shared validation functions for all entry points.

Pure functions — no FastAPI or Click dependencies.  Text validators follow
one convention: they return ``(cleaned, None)`` on success or
``(fallback, error_message)`` on failure, and the caller decides whether
that becomes a ``ValueError``, a 400 response, or a CLI error.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import UTC, datetime
from typing import Any

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 5000
MAX_HOURS = 1000
MAX_NAME_LENGTH = 50

# <prefix>-<hex>, with an optional "u-" infix for users.  The prefix may itself
# contain hyphens (it defaults to the project directory name).
_ID_RE = re.compile(r"[A-Za-z0-9_.][A-Za-z0-9_.-]*-(?:[0-9a-f]{10}|[0-9a-f]{16})")
_EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[A-Za-z]{2,}")


def is_valid_id(value: Any) -> bool:
    """Return True if *value* is structurally a bugtrail identifier."""
    return isinstance(value, str) and _ID_RE.fullmatch(value) is not None


def sanitize_text(value: Any, name: str, *, max_length: int, required: bool = True) -> tuple[str, str | None]:
    """Trim and bound a free-text field.

    Control characters other than newline, carriage return and tab are rejected.
    """
    if value is None:
        value = ""
    if not isinstance(value, str):
        return ("", f"{name} must be a string")
    for ch in value:
        if ch in "\n\r\t":
            continue
        if unicodedata.category(ch) == "Cc":
            return ("", f"{name} must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if required and not cleaned:
        return ("", f"{name} is required")
    if len(cleaned) > max_length:
        return ("", f"{name} must be at most {max_length} characters")
    return (cleaned, None)


def check_choice(value: Any, name: str, valid: frozenset[str]) -> str | None:
    """Return an error message if *value* is not one of *valid*."""
    if not isinstance(value, str) or value not in valid:
        return f"{name} must be one of: {', '.join(sorted(valid))}"
    return None


def sanitize_hours(value: Any, name: str) -> tuple[float | None, str | None]:
    if value is None or value == "":
        return (None, None)
    if isinstance(value, bool):
        return (None, f"{name} must be a number")
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return (None, f"{name} must be a number")
    if hours != hours or not (0 <= hours <= MAX_HOURS):  # NaN fails the first check
        return (None, f"{name} must be between 0 and {MAX_HOURS}")
    return (hours, None)


def normalize_tags(value: Any) -> tuple[list[str], str | None]:
    """Trim and lowercase tags, dropping blanks but keeping order."""
    if value is None:
        return ([], None)
    if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
        return ([], "tags must be a list of strings")
    return ([t.strip().lower() for t in value if t.strip()], None)


def parse_timestamp(value: Any, name: str) -> tuple[datetime | None, str | None]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return (None, None)
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return (None, f"{name} must be an ISO-8601 timestamp")
    else:
        return (None, f"{name} must be an ISO-8601 timestamp")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return (dt, None)


def validate_email(value: Any) -> tuple[str, str | None]:
    if not isinstance(value, str) or not _EMAIL_RE.fullmatch(value.strip()):
        return ("", "email must be a valid email address")
    return (value.strip().lower(), None)
