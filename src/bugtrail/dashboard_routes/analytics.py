"""Analytics and overview route handlers."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING

from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from bugtrail.analytics import build_report, get_overview
from bugtrail.core import BugTrailDB
from bugtrail.dashboard_routes.common import _engine_error_response, _query_dict
from bugtrail.errors import InvalidFilterError, PersistenceError
from bugtrail.filters import normalize_filter


def create_router() -> APIRouter:
    """Build the APIRouter for analytics endpoints."""
    from fastapi import APIRouter, Depends
    from fastapi.responses import JSONResponse

    from bugtrail.dashboard import _get_db

    router = APIRouter()

    @router.get("/bugs/analytics")
    def api_analytics(request: Request, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        """Counters, distributions, top assignees and monthly trend.

        Accepts the same filter keys as ``/bugs``; without them the report
        covers every bug.
        """
        t0 = perf_counter()
        try:
            report = build_report(db, normalize_filter(_query_dict(request)))
        except (InvalidFilterError, PersistenceError) as exc:
            return _engine_error_response(exc, "analytics")
        elapsed_ms = round((perf_counter() - t0) * 1000, 2)
        return JSONResponse(report, headers={"Server-Timing": f"analytics;dur={elapsed_ms}"})

    @router.get("/bugs/stats/overview")
    def api_overview(request: Request, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        try:
            stats = get_overview(db, normalize_filter(_query_dict(request)))
        except (InvalidFilterError, PersistenceError) as exc:
            return _engine_error_response(exc, "overview statistics")
        return JSONResponse(stats)

    return router
