# ruff: noqa: S101
from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import inspect

from usage_limits.core.config import settings
from usage_limits.db.session import Database
from usage_limits.main import app, create_app


def test_versioned_routes_registered() -> None:
    paths = set(app.openapi()["paths"])
    assert "/healthz" in paths
    assert "/api/v1/limits" in paths
    assert "/api/v1/limits/cleanup" in paths
    assert "/api/v1/limits/validation/{entity_type}/{entity_id}" in paths
    assert "/api/v1/interactions" in paths
    assert "/api/v1/agents/{agent_id}/token-usage" in paths
    assert "/api/v1/organizations/{organization_id}/limit-cleanup-interval" in paths


@pytest.mark.asyncio
async def test_lifespan_creates_schema_and_disposes_database(monkeypatch) -> None:
    monkeypatch.setattr(settings, "db_auto_migrate", True)
    database = Database.from_url("sqlite+aiosqlite:///:memory:")
    test_app = create_app(database)

    async with test_app.router.lifespan_context(test_app):
        assert test_app.state.database is database
        async with database.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
        assert {"limits", "interactions", "organizations", "token_prices"} <= tables

        async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://testserver") as client:
            response = await client.get("/healthz")
        assert response.json() == {"ok": True}
