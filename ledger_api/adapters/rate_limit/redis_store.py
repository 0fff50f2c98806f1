"""Redis-backed fixed-window rate limiter.

Counters live in Redis so every worker process shares one budget per key.
The read-check-increment sequence runs as a single Lua script, which Redis
executes atomically, so concurrent callers can never both observe
``count < limit`` and both increment past it.

Any Redis failure (connection refused, timeout, script error) is reported as
``LimiterUnavailableAppError``. The limiter never guesses an admission.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

import redis
from redis.exceptions import RedisError

from ledger_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from ledger_api.core.errors import LimiterUnavailableAppError

logger = logging.getLogger(__name__)

# KEYS[1] = counter key; ARGV = limit, window_ms, cost.
# Returns {allowed, count, pttl_ms}.
FIXED_WINDOW_SCRIPT = """
local limit = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local cost = tonumber(ARGV[3])
local count = tonumber(redis.call('GET', KEYS[1]) or '0')
if count + cost > limit then
    local ttl = redis.call('PTTL', KEYS[1])
    if ttl < 0 then
        redis.call('PEXPIRE', KEYS[1], window_ms)
        ttl = window_ms
    end
    return {0, count, ttl}
end
count = redis.call('INCRBY', KEYS[1], cost)
if count == cost then
    redis.call('PEXPIRE', KEYS[1], window_ms)
end
local ttl = redis.call('PTTL', KEYS[1])
if ttl < 0 then
    redis.call('PEXPIRE', KEYS[1], window_ms)
    ttl = window_ms
end
return {1, count, ttl}
"""


class RedisFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter storing one expiring counter per key in Redis."""

    backend = "redis"

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        client: "redis.Redis | None" = None,
        url: str | None = None,
        timeout_seconds: float = 2.0,
        key_prefix: str = "ledger:rl:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter from an existing client or a Redis URL.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Size of the window in seconds.
            client: Pre-built Redis client (takes precedence over ``url``).
            url: Redis URL, e.g. ``redis://localhost:6379/0``.
            timeout_seconds: Socket and connect timeout for every call.
            key_prefix: Namespace prepended to every counter key.
            clock: Time source used to compute ``reset_at``.

        Raises:
            ValueError: If limits are invalid or neither client nor url is given.
        """
        super().__init__(limit=limit, window_seconds=window_seconds)
        if client is None:
            if not url:
                raise ValueError("a Redis client or url is required")
            client = redis.Redis.from_url(
                url,
                socket_timeout=timeout_seconds,
                socket_connect_timeout=timeout_seconds,
            )
        self._client = client
        self._key_prefix = key_prefix
        self._clock = clock
        self._script = client.register_script(FIXED_WINDOW_SCRIPT)

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        self._validate_consume_args(key, cost)

        window_ms = self._window_seconds * 1000
        try:
            allowed, count, ttl_ms = self._script(
                keys=[self._redis_key(key)],
                args=[self._limit, window_ms, cost],
            )
        except RedisError as exc:
            logger.error(
                "rate_limit.store_unavailable",
                extra={"backend": self.backend, "error_type": type(exc).__name__},
            )
            raise LimiterUnavailableAppError(
                code="rate_limiter_unavailable",
                message="Rate limiter is temporarily unavailable",
                details={"backend": self.backend},
            ) from exc

        now = self._clock()
        ttl_s = max(0, int(ttl_ms)) / 1000
        reset_at = int(math.ceil(now + ttl_s))
        admitted = bool(int(allowed))
        return RateLimitResult(
            allowed=admitted,
            limit=self._limit,
            remaining=max(0, self._limit - int(count)),
            reset_at=reset_at,
            retry_after_seconds=None if admitted else max(1, int(math.ceil(ttl_s))),
        )

