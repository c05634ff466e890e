"""
Request authorization for Toolgate.

Provides:
- Fixed-window rate limiting per client
- The request guard (transport, API key, rate limit, origin checks)
"""

from .ratelimit import (
    RateLimiter,
    InMemoryRateLimiter,
    RateLimitEntry,
    RateLimitDecision,
)
from .guard import (
    GuardRequest,
    GuardRejection,
    RejectionKind,
    RequestGuard,
    UNKNOWN_CLIENT,
)

__all__ = [
    # Rate limiting
    "RateLimiter",
    "InMemoryRateLimiter",
    "RateLimitEntry",
    "RateLimitDecision",
    # Guard
    "GuardRequest",
    "GuardRejection",
    "RejectionKind",
    "RequestGuard",
    "UNKNOWN_CLIENT",
]
