"""Shared helpers for dashboard route modules."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fastapi.responses import JSONResponse
    from starlette.requests import Request

from bugtrail.errors import InvalidFilterError, InvalidPaginationError, PersistenceError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error_response(
    message: str,
    code: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Return a structured error response and log the error."""
    from fastapi.responses import JSONResponse

    logger.warning("API error [%s] %s: %s", status_code, code, message)
    return JSONResponse(
        {"error": {"message": message, "code": code, "details": details or {}}},
        status_code=status_code,
    )


async def _parse_json_body(request: Request) -> dict[str, Any] | JSONResponse:
    """Parse and validate a JSON object body, returning 400 on failure."""
    import json

    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError, UnicodeDecodeError):
        return _error_response("Invalid JSON body", "VALIDATION_ERROR", 400)
    if not isinstance(body, dict):
        return _error_response("Request body must be a JSON object", "VALIDATION_ERROR", 400)
    return body


def _engine_error_response(exc: InvalidFilterError | InvalidPaginationError | PersistenceError, what: str) -> JSONResponse:
    """Map a query-engine error to its HTTP response.

    Store failures never leak driver text to the client; the driver error
    was already logged where it happened.
    """
    if isinstance(exc, InvalidFilterError):
        return _error_response(str(exc), "INVALID_FILTER", 400, {"field": exc.field, "value": str(exc.value)})
    if isinstance(exc, InvalidPaginationError):
        return _error_response(str(exc), "INVALID_PAGINATION", 400, {"field": exc.field, "value": str(exc.value)})
    if exc.timed_out:
        return _error_response(f"Timed out fetching {what}", "PERSISTENCE_TIMEOUT", 504, {"operation": exc.operation})
    return _error_response(f"Failed to fetch {what}", "PERSISTENCE_ERROR", 500, {"operation": exc.operation})


def _query_dict(request: Request) -> dict[str, str]:
    """Query string as a plain dict; the last value wins for repeated keys."""
    return dict(request.query_params)
