"""Middleware tests — request IDs, security headers, error envelope."""

import pytest


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r = await client.get("/api/health")
    assert len(r.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/health", headers={"X-Request-ID": "trace-abc-123"})
    assert r.headers["x-request-id"] == "trace-abc-123"


@pytest.mark.asyncio
async def test_security_headers(client):
    r = await client.get("/api/health")
    assert r.headers["x-content-type-options"] == "nosniff"
    assert r.headers["x-frame-options"] == "DENY"
    assert r.headers["referrer-policy"] == "strict-origin-when-cross-origin"
    # Test client talks plain http.
    assert "strict-transport-security" not in r.headers
    assert "cache-control" not in r.headers


@pytest.mark.asyncio
async def test_auth_responses_not_cached(client):
    r = await client.post("/api/auth/login", json={"email": "x@example.com", "password": "p"})
    assert r.headers["cache-control"] == "no-store"
    assert r.headers["x-content-type-options"] == "nosniff"


@pytest.mark.asyncio
async def test_error_envelope_on_unknown_route(client):
    r = await client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert "detail" in r.json()
    assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_validation_error_is_400_with_field(client):
    r = await client.post("/api/auth/login", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert r.json()["detail"].startswith("password:")
