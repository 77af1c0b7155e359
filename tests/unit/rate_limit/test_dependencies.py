"""Unit tests for the rate limit dependency."""

from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from starlette.requests import Request

from flowgrid_auth.config import settings
from flowgrid_auth.core.errors import RateLimitError
from flowgrid_auth.core.rate_limit.backend import RateLimitResult
from flowgrid_auth.core.rate_limit.dependencies import RateLimit


def make_request(client_host="192.168.1.1", headers=None):
    """Create a bare Request for testing."""
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/api/auth/login",
            "headers": raw_headers,
            "client": (client_host, 5000) if client_host else None,
        }
    )


def make_limiter(result=None, error=None):
    limiter = AsyncMock()
    if error is not None:
        limiter.is_allowed.side_effect = error
    else:
        limiter.is_allowed.return_value = result
    return limiter


class TestRateLimitDependency:
    """Tests for RateLimit.__call__."""

    @pytest.mark.asyncio
    async def test_allowed_request_passes(self):
        limiter = make_limiter(RateLimitResult(allowed=True, limit=20, remaining=19, reset_time=0))

        await RateLimit("login")(make_request(), limiter)

        _, kwargs = limiter.is_allowed.await_args
        assert kwargs["identifier"] == "ip:192.168.1.1"
        assert kwargs["endpoint_class"] == "login"
        assert (kwargs["limit"], kwargs["window"]) == (20, 300)

    @pytest.mark.asyncio
    async def test_forwarded_for_from_trusted_proxy_identifies_client(self, monkeypatch):
        monkeypatch.setattr(settings, "trusted_proxies", ["10.0.0.1"])
        limiter = make_limiter(RateLimitResult(allowed=True, limit=10, remaining=9, reset_time=0))
        request = make_request(
            client_host="10.0.0.1",
            headers={"X-Forwarded-For": "203.0.113.100, 10.0.0.1"},
        )

        await RateLimit("password")(request, limiter)

        _, kwargs = limiter.is_allowed.await_args
        assert kwargs["identifier"] == "ip:203.0.113.100"

    @pytest.mark.asyncio
    async def test_forwarded_headers_from_untrusted_peer_are_ignored(self, monkeypatch):
        monkeypatch.setattr(settings, "trusted_proxies", [])
        limiter = make_limiter(RateLimitResult(allowed=True, limit=10, remaining=9, reset_time=0))
        request = make_request(
            client_host="192.168.1.1",
            headers={"X-Forwarded-For": "203.0.113.100", "X-Real-IP": "203.0.113.101"},
        )

        await RateLimit("login")(request, limiter)

        _, kwargs = limiter.is_allowed.await_args
        assert kwargs["identifier"] == "ip:192.168.1.1"

    @pytest.mark.asyncio
    async def test_denied_request_raises_with_retry_after(self):
        limiter = make_limiter(
            RateLimitResult(
                allowed=False, limit=20, remaining=0, reset_time=1700000000, retry_after=42
            )
        )

        with pytest.raises(RateLimitError) as exc_info:
            await RateLimit("login")(make_request(), limiter)

        assert exc_info.value.status_code == 429
        assert exc_info.value.details == {"retryAfter": 42}
        assert exc_info.value.headers["Retry-After"] == "42"
        assert exc_info.value.headers["X-RateLimit-Limit"] == "20"

    @pytest.mark.asyncio
    async def test_backend_failure_fails_open(self):
        limiter = make_limiter(error=RedisConnectionError("connection refused"))

        await RateLimit("login")(make_request(), limiter)

        limiter.is_allowed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_rate_limiting_skips_backend(self):
        limiter = make_limiter()

        with patch("flowgrid_auth.core.rate_limit.dependencies.settings") as mock_settings:
            mock_settings.rate_limit_enabled = False
            await RateLimit("login")(make_request(), limiter)

        limiter.is_allowed.assert_not_awaited()
