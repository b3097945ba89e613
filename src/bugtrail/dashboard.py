"""HTTP API for bugtrail — listing, export, analytics, and bug/user CRUD.

Single-project local server.  A module-level ``_db`` is set at startup and
injected via ``Depends(_get_db)``.

Usage:
    bugtrail dashboard                    # Opens the API docs at localhost:8390
    bugtrail dashboard --port 9000        # Custom port
    bugtrail dashboard --no-browser       # Skip auto-open
"""

from __future__ import annotations

import logging
import webbrowser
from typing import Any

from bugtrail.core import BugTrailDB, find_bugtrail_root
from bugtrail.logging import setup_logging

DEFAULT_PORT = 8390

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_db: BugTrailDB | None = None


def _get_db() -> BugTrailDB:
    """Return the active database connection."""
    from fastapi import HTTPException

    if _db is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return _db


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> Any:
    """Create the FastAPI application with all API endpoints mounted at ``/api``."""
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    from bugtrail import __version__
    from bugtrail.dashboard_routes import analytics, bugs, users

    app = FastAPI(title="bugtrail", version=__version__, redoc_url=None)

    # analytics first: its /bugs/... paths are more specific than /bug/{id}
    app.include_router(analytics.create_router(), prefix="/api")
    app.include_router(bugs.create_router(), prefix="/api")
    app.include_router(users.create_router(), prefix="/api")

    @app.get("/api/health")
    async def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok", "prefix": _db.prefix if _db is not None else ""})

    return app


def main(port: int = DEFAULT_PORT, *, no_browser: bool = False) -> None:
    """Start the API server for the project discovered from cwd."""
    import threading

    import uvicorn

    global _db

    bugtrail_dir = find_bugtrail_root()
    setup_logging(bugtrail_dir)
    _db = BugTrailDB.from_project(bugtrail_dir.parent)
    _db.reconnect(check_same_thread=False)

    app = create_app()

    if not no_browser:
        threading.Timer(0.5, lambda: webbrowser.open(f"http://localhost:{port}/docs")).start()

    logger.info("Dashboard starting on port %d", port)
    print(f"bugtrail API: http://localhost:{port}")
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
