"""Redis sliding window rate limiter.

Each (endpoint class, identifier) pair owns a sorted set whose members are
request timestamps. Counting the members inside the window gives an exact
sliding count that every service instance shares.
"""

import math
import time
from dataclasses import dataclass
from uuid import uuid4

from flowgrid_auth.core.cache.redis import redis_client
from flowgrid_auth.core.constants import RATE_LIMIT_PREFIX


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: int | None = None


class SlidingWindowRateLimiter:
    """Redis-based sliding window rate limiter.

    Every request, admitted or not, is recorded, so a client that keeps
    hammering a limited endpoint stays limited until it backs off.
    """

    def __init__(self, prefix: str = RATE_LIMIT_PREFIX) -> None:
        """Initialize the rate limiter.

        Args:
            prefix: Key prefix for Redis keys
        """
        self.prefix = prefix

    def _build_key(self, identifier: str, endpoint_class: str | None = None) -> str:
        """Build a Redis key such as ``flowgrid:ratelimit:login:ip:10.0.0.1``."""
        if endpoint_class:
            return f"{self.prefix}:{endpoint_class}:{identifier}"
        return f"{self.prefix}:{identifier}"

    async def is_allowed(
        self,
        identifier: str,
        limit: int,
        window: int,
        endpoint_class: str | None = None,
    ) -> RateLimitResult:
        """Record a request and decide whether it fits under the ceiling.

        Args:
            identifier: Caller identity, usually ``ip:<address>``
            limit: Maximum number of requests allowed in the window
            window: Time window in seconds
            endpoint_class: Endpoint class the ceiling applies to

        Returns:
            RateLimitResult with allowed status and metadata
        """
        key = self._build_key(identifier, endpoint_class)
        now = time.time()
        window_start = now - window
        member = f"{now}:{uuid4().hex[:8]}"

        async with redis_client() as client, client.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zadd(key, {member: now})
            pipe.zcard(key)
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.expire(key, window)

            results = await pipe.execute()
            count = results[2]
            oldest = results[3]

        oldest_score = oldest[0][1] if oldest else now
        reset_time = int(math.ceil(oldest_score + window))
        allowed = count <= limit

        retry_after: int | None = None
        if not allowed:
            retry_after = max(1, int(math.ceil(oldest_score + window - now)))

        return RateLimitResult(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            reset_time=reset_time,
            retry_after=retry_after,
        )

    async def reset(self, identifier: str, endpoint_class: str | None = None) -> bool:
        """Forget all recorded requests for an identifier.

        Returns:
            True if a key was deleted
        """
        key = self._build_key(identifier, endpoint_class)
        async with redis_client() as client:
            result = await client.delete(key)
            return result > 0


# Global rate limiter instance
rate_limiter = SlidingWindowRateLimiter()
