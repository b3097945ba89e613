"""Bug listing, export, and CRUD route handlers."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from bugtrail.core import BugTrailDB
from bugtrail.dashboard_routes.common import (
    _engine_error_response,
    _error_response,
    _parse_json_body,
    _query_dict,
)
from bugtrail.errors import InvalidFilterError, InvalidPaginationError, PersistenceError
from bugtrail.export import export_csv, export_filename
from bugtrail.filters import normalize_filter
from bugtrail.query import UNASSIGNED_LABEL, UNKNOWN_REPORTER_LABEL, list_bugs_from_params
from bugtrail.types.api import ListedBug

logger = logging.getLogger(__name__)

# Body keys accepted by PUT/PATCH /bug/{id}.
_UPDATABLE = (
    "title",
    "description",
    "status",
    "priority",
    "type",
    "assignee_id",
    "tags",
    "estimated_hours",
    "actual_hours",
    "due_date",
)


def _bug_detail(db: BugTrailDB, bug_id: str) -> ListedBug:
    bug = db.get_bug(bug_id)
    return ListedBug(
        **bug.to_dict(),
        assignee_name=db.display_name(bug.assignee_id, UNASSIGNED_LABEL),
        reporter_name=db.display_name(bug.reporter_id, UNKNOWN_REPORTER_LABEL),
    )


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------


def create_router() -> APIRouter:
    """Build the APIRouter for bug endpoints.

    NOTE: CRUD handlers are async and run their single SQLite statements on
    the event loop thread. Listing and export are plain ``def`` so FastAPI
    runs them in its threadpool, since the query engine waits on worker reads
    for up to the read timeout.
    """
    from fastapi import APIRouter, Depends
    from fastapi.responses import JSONResponse, Response

    from bugtrail.dashboard import _get_db

    router = APIRouter()

    @router.get("/bugs")
    def api_bugs(request: Request, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        """Filtered, paginated bug listing, newest first."""
        try:
            listing = list_bugs_from_params(db, _query_dict(request))
        except (InvalidFilterError, InvalidPaginationError, PersistenceError) as exc:
            return _engine_error_response(exc, "bugs")
        return JSONResponse(listing.to_dict())

    @router.get("/bugs/export")
    def api_bugs_export(request: Request, db: BugTrailDB = Depends(_get_db)) -> Response:
        try:
            bug_filter = normalize_filter(_query_dict(request))
            text = export_csv(db, bug_filter)
        except (InvalidFilterError, PersistenceError) as exc:
            return _engine_error_response(exc, "bugs for export")
        filename = export_filename(datetime.now(UTC))
        return Response(
            text,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @router.post("/bugs")
    async def api_create_bug(request: Request, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        reporter_id = body.get("reporter_id")
        if not isinstance(reporter_id, str) or not reporter_id:
            return _error_response("reporter_id is required", "VALIDATION_ERROR", 400)
        try:
            bug = db.create_bug(
                body.get("title", ""),
                body.get("description", ""),
                reporter_id=reporter_id,
                priority=body.get("priority", "medium"),
                type=body.get("type", "bug"),
                assignee_id=body.get("assignee_id"),
                tags=body.get("tags"),
                estimated_hours=body.get("estimated_hours"),
                due_date=body.get("due_date"),
            )
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(_bug_detail(db, bug.id), status_code=201)

    @router.get("/bug/{bug_id}")
    async def api_bug_detail(bug_id: str, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        try:
            return JSONResponse(_bug_detail(db, bug_id))
        except KeyError:
            return _error_response(f"Bug not found: {bug_id}", "BUG_NOT_FOUND", 404)

    @router.api_route("/bug/{bug_id}", methods=["PUT", "PATCH"])
    async def api_update_bug(bug_id: str, request: Request, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        unknown = sorted(set(body) - set(_UPDATABLE))
        if unknown:
            return _error_response(
                f"Unknown field(s): {', '.join(unknown)}",
                "VALIDATION_ERROR",
                400,
                {"fields": unknown},
            )
        changes: dict[str, Any] = {k: body[k] for k in _UPDATABLE if k in body}
        try:
            db.update_bug(bug_id, **changes)
        except KeyError:
            return _error_response(f"Bug not found: {bug_id}", "BUG_NOT_FOUND", 404)
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(_bug_detail(db, bug_id))

    @router.delete("/bug/{bug_id}")
    async def api_delete_bug(bug_id: str, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        try:
            db.delete_bug(bug_id)
        except KeyError:
            return _error_response(f"Bug not found: {bug_id}", "BUG_NOT_FOUND", 404)
        logger.info("Deleted bug %s via API", bug_id)
        return JSONResponse({"deleted": bug_id})

    return router
