"""Integration tests for health probes."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from flowgrid_auth.config import settings


pytestmark = pytest.mark.integration


class TestLiveness:
    """Tests for /health/live endpoint."""

    async def test_liveness_returns_alive(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_liveness_is_not_rate_limited(self, client: AsyncClient, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_general_requests", 0)

        response = await client.get("/health/live")

        assert response.status_code == 200


class TestReadiness:
    """Tests for /health/ready endpoint."""

    async def test_readiness_all_ok(self, client: AsyncClient):
        with patch("flowgrid_auth.api.router.ping_redis", AsyncMock(return_value=True)):
            response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "checks": {"database": "ok", "redis": "ok"},
        }

    async def test_readiness_redis_down(self, client: AsyncClient):
        ping = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        with patch("flowgrid_auth.api.router.ping_redis", ping):
            response = await client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "ok"
        assert "connection refused" in data["checks"]["redis"]
