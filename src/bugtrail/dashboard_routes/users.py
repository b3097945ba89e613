"""User directory route handlers (assignee pickers, reporter lookup)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.requests import Request

if TYPE_CHECKING:
    from fastapi import APIRouter

from bugtrail.core import BugTrailDB
from bugtrail.dashboard_routes.common import _error_response, _parse_json_body


def create_router() -> APIRouter:
    from fastapi import APIRouter, Depends
    from fastapi.responses import JSONResponse

    from bugtrail.dashboard import _get_db

    router = APIRouter()

    @router.get("/users")
    async def api_users(request: Request, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        active_only = request.query_params.get("active", "").lower() in ("1", "true", "yes", "on")
        return JSONResponse([u.to_dict() for u in db.list_users(active_only=active_only)])

    @router.post("/users")
    async def api_create_user(request: Request, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            user = db.create_user(
                body.get("email", ""),
                first_name=body.get("first_name", ""),
                last_name=body.get("last_name", ""),
                role=body.get("role", "developer"),
            )
        except ValueError as e:
            return _error_response(str(e), "VALIDATION_ERROR", 400)
        return JSONResponse(user.to_dict(), status_code=201)

    @router.get("/user/{user_id}")
    async def api_user_detail(user_id: str, db: BugTrailDB = Depends(_get_db)) -> JSONResponse:
        try:
            return JSONResponse(db.get_user(user_id).to_dict())
        except KeyError:
            return _error_response(f"User not found: {user_id}", "USER_NOT_FOUND", 404)

    return router
