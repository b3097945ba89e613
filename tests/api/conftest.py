"""Fixtures for HTTP dashboard API tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

import bugtrail.dashboard as dash_module
from bugtrail.dashboard import create_app
from tests.conftest import PopulatedDB


@pytest.fixture
def dashboard_db(populated_db: PopulatedDB) -> PopulatedDB:
    """Use the populated_db fixture for dashboard tests.

    Reconnects the underlying DB with check_same_thread=False so handlers
    may touch the shared connection from any thread.  Returns the full
    PopulatedDB wrapper so tests can access ``.db`` and ``.ids``.
    """
    db = populated_db.db
    db.reconnect(check_same_thread=False)
    return populated_db


@pytest.fixture
async def client(dashboard_db: PopulatedDB) -> AsyncIterator[AsyncClient]:
    """Create a test client backed by the populated project DB."""
    dash_module._db = dashboard_db.db
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    dash_module._db = None
