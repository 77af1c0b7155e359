"""Redis connection management for shared counters."""

from flowgrid_auth.core.cache.redis import close_redis_pool, ping_redis, redis_client


__all__ = [
    "close_redis_pool",
    "ping_redis",
    "redis_client",
]
