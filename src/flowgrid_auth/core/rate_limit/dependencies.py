"""FastAPI dependencies applying per-endpoint-class rate limits."""

from typing import Annotated

import structlog
from fastapi import Depends, Request
from redis.exceptions import RedisError

from flowgrid_auth.config import settings
from flowgrid_auth.core.errors import RateLimitError
from flowgrid_auth.core.logging import get_client_ip
from flowgrid_auth.core.rate_limit.backend import SlidingWindowRateLimiter, rate_limiter


logger = structlog.get_logger()


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Return the shared rate limiter instance."""
    return rate_limiter


Limiter = Annotated[SlidingWindowRateLimiter, Depends(get_rate_limiter)]


class RateLimit:
    """Dependency enforcing the ceiling of one endpoint class.

    Usage:
        @router.post("/login", dependencies=[Depends(login_rate_limit)])
        async def login(...):
            ...
    """

    def __init__(self, endpoint_class: str) -> None:
        self.endpoint_class = endpoint_class

    async def __call__(self, request: Request, limiter: Limiter) -> None:
        """Record the request and raise when the ceiling is exceeded.

        Raises:
            RateLimitError: If the caller IP is over the class ceiling
        """
        if not settings.rate_limit_enabled:
            return

        limit, window = settings.rate_limit_for(self.endpoint_class)
        client_ip = get_client_ip(request) or "unknown"

        try:
            result = await limiter.is_allowed(
                identifier=f"ip:{client_ip}",
                limit=limit,
                window=window,
                endpoint_class=self.endpoint_class,
            )
        except (RedisError, OSError) as exc:
            # Fail open: account lockout still guards credentials
            logger.error(
                "rate_limit_backend_unavailable",
                endpoint_class=self.endpoint_class,
                error=str(exc),
            )
            return

        if not result.allowed:
            logger.warning(
                "rate_limit_exceeded",
                endpoint_class=self.endpoint_class,
                client_ip=client_ip,
                limit=result.limit,
            )
            raise RateLimitError(
                retry_after=result.retry_after,
                limit=result.limit,
                reset_time=result.reset_time,
            )


login_rate_limit = RateLimit("login")
password_rate_limit = RateLimit("password")
mfa_rate_limit = RateLimit("mfa")
invite_rate_limit = RateLimit("invite")
general_rate_limit = RateLimit("general")
