"""Middleware tests: request ID, rate limiting, CORS, error envelopes."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.routing import APIRoute
from httpx import ASGITransport, AsyncClient

from napft.main import create_app
from napft.middleware.cors import ALLOWED_METHODS
from napft.middleware.logging import setup_logging


def _fake_redis(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/api/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/api/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_rate_limit_bypassed_without_redis(client: AsyncClient) -> None:
    response = await client.get("/api/nfts")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr("napft.middleware.rate_limit.get_redis", lambda: _fake_redis(3))
    response = await client.get("/api/nfts")
    assert response.status_code == 200
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "97"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr("napft.middleware.rate_limit.get_redis", lambda: _fake_redis(101))
    response = await client.get("/api/nfts")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert response.json() == {
        "success": False,
        "message": "Rate limit exceeded. Try again later.",
        "error": "RateLimited",
    }


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr("napft.middleware.rate_limit.get_redis", lambda: _fake_redis(1000))
    response = await client.get("/api/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/api/nfts",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_404_returns_envelope(client: AsyncClient) -> None:
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Not Found", "error": "NotFound"}


@pytest.mark.asyncio
async def test_validation_error_is_400(client: AsyncClient) -> None:
    response = await client.get("/api/nfts", params={"page": 0})
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "ValidationError"
    assert data["errors"]


@pytest.mark.asyncio
async def test_unhandled_exception_returns_500_envelope(database, settings) -> None:
    app = create_app()

    @app.get("/api/boom")
    async def boom() -> None:
        msg = "kaboom"
        raise RuntimeError(msg)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/boom")

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error", "error": "InternalError"}


def test_cors_methods_cover_every_route(settings) -> None:
    app = create_app()
    served = {method for route in app.routes if isinstance(route, APIRoute) for method in route.methods}
    assert served <= set(ALLOWED_METHODS)


@pytest.mark.asyncio
async def test_cors_preflight_rejects_unserved_method(client: AsyncClient) -> None:
    response = await client.options(
        "/api/nfts/1",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "DELETE",
        },
    )
    assert response.status_code == 400


def test_setup_logging_quiets_library_loggers(settings) -> None:
    try:
        setup_logging(settings.model_copy(update={"debug": True}))
        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG
    finally:
        setup_logging(settings)
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
