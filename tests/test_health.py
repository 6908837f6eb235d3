"""Health endpoint tests."""

import pytest

from notekeeper import __version__
from notekeeper.db.engine import get_db
from notekeeper.main import app


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["version"] == __version__


@pytest.mark.asyncio
async def test_health_hides_database_error_text(client):
    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise ConnectionRefusedError("connect to 10.0.0.5:5432 refused for user notekeeper")

    app.dependency_overrides[get_db] = lambda: BrokenSession()
    r = await client.get("/api/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "degraded"
    assert data["database"] == "error"
    assert "10.0.0.5" not in r.text
