"""Request-rate limiting with a Redis sliding window.

Ceilings are applied per endpoint class and caller IP, before any
credential lookup happens.
"""

from flowgrid_auth.core.rate_limit.backend import (
    RateLimitResult,
    SlidingWindowRateLimiter,
    rate_limiter,
)
from flowgrid_auth.core.rate_limit.dependencies import (
    RateLimit,
    general_rate_limit,
    get_rate_limiter,
    invite_rate_limit,
    login_rate_limit,
    mfa_rate_limit,
    password_rate_limit,
)


__all__ = [
    "RateLimit",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
    "general_rate_limit",
    "get_rate_limiter",
    "invite_rate_limit",
    "login_rate_limit",
    "mfa_rate_limit",
    "password_rate_limit",
    "rate_limiter",
]
