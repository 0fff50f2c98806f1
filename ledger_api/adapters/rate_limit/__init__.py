"""Rate limiting adapters.

Two counter stores sit behind ``AbstractRateLimiter``: a per-process
in-memory table and a shared Redis instance. The dispatcher only sees the
interface, so switching backends is a configuration change.
"""

from ledger_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from ledger_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ledger_api.adapters.rate_limit.redis_store import RedisFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
    "RedisFixedWindowRateLimiter",
]
