"""Rate limit wiring between settings, limiter adapters and the dispatcher.

Rate limiting strategy:
- Fixed window per client, keyed by the caller's address (``ip:<host>``).
  Behind a trusted proxy the first ``X-Forwarded-For`` hop can be used.
- Counter store selected by configuration: per-process memory or Redis.
- When the counter store is unreachable the request is rejected with
  ``LimiterUnavailableAppError`` unless fail-open is configured.
"""

from __future__ import annotations

import hashlib
import logging
import threading

from fastapi import Request

from ledger_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from ledger_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ledger_api.adapters.rate_limit.redis_store import RedisFixedWindowRateLimiter
from ledger_api.core.config import settings
from ledger_api.core.errors import LimiterUnavailableAppError, RateLimitExceededAppError

logger = logging.getLogger(__name__)


# (config, limiter) swapped as one reference so readers never see a mixed pair
_cached: tuple[tuple, AbstractRateLimiter] | None = None
_limiter_lock = threading.Lock()


def _current_config() -> tuple:
    app = settings.app
    return (
        app.rate_limit_backend,
        app.rate_limit_requests,
        app.rate_limit_window_seconds,
        app.rate_limit_redis_url,
        app.rate_limit_key_prefix,
        app.rate_limit_timeout_seconds,
    )


def build_rate_limiter() -> AbstractRateLimiter:
    """Construct a limiter for the configured backend.

    Raises:
        ValueError: If the Redis backend is selected without a URL.
    """
    app = settings.app
    if app.rate_limit_backend == "redis":
        if not app.rate_limit_redis_url:
            raise ValueError("APP_RATE_LIMIT_REDIS_URL is required for the redis backend")
        return RedisFixedWindowRateLimiter(
            limit=app.rate_limit_requests,
            window_seconds=app.rate_limit_window_seconds,
            url=app.rate_limit_redis_url,
            timeout_seconds=app.rate_limit_timeout_seconds,
            key_prefix=app.rate_limit_key_prefix,
        )
    return InMemoryFixedWindowRateLimiter(
        limit=app.rate_limit_requests,
        window_seconds=app.rate_limit_window_seconds,
    )


def get_rate_limiter() -> AbstractRateLimiter | None:
    """Return the process-wide rate limiter, or None when limiting is disabled.

    The instance is cached in-module to preserve counters across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.
    """

    global _cached

    if not settings.app.rate_limit_enabled:
        return None

    config = _current_config()
    cached = _cached
    if cached is not None and cached[0] == config:
        return cached[1]

    # Sync dependencies run in the threadpool; only one thread may build
    with _limiter_lock:
        if _cached is None or _cached[0] != config:
            limiter = build_rate_limiter()
            _cached = (config, limiter)
            logger.info(
                "rate_limit.configured",
                extra={
                    "backend": limiter.backend,
                    "limit": limiter.limit,
                    "window_s": limiter.window_seconds,
                },
            )
        return _cached[1]


def reset_rate_limiter() -> None:
    """Drop the cached limiter so the next request builds a fresh one."""

    global _cached
    with _limiter_lock:
        _cached = None


def build_rate_limit_key(request: Request) -> str:
    """Build the limiter key identifying the caller of ``request``."""

    if settings.app.rate_limit_trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def check_rate_limit(limiter: AbstractRateLimiter, key: str) -> RateLimitResult | None:
    """Consume one unit for ``key`` and raise unless the request is admitted.

    Args:
        limiter: Limiter to consult.
        key: Caller identity built by ``build_rate_limit_key``.

    Returns:
        The admitting RateLimitResult, or None when the counter store was
        unreachable and fail-open is configured.

    Raises:
        RateLimitExceededAppError: When the caller exhausted its window.
        LimiterUnavailableAppError: When the counter store is unreachable
            and fail-open is not configured.
    """

    key_hash = _hash_limiter_key(key)
    try:
        result = limiter.consume(key)
    except LimiterUnavailableAppError:
        if not settings.app.rate_limit_fail_open:
            logger.error(
                "rate_limit.unavailable_rejected",
                extra={"backend": limiter.backend, "key_hash": key_hash},
            )
            raise
        logger.error(
            "rate_limit.unavailable_admitted",
            extra={"backend": limiter.backend, "key_hash": key_hash},
        )
        return None

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return result

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": result.limit,
            "remaining": result.remaining,
            "window_s": limiter.window_seconds,
            "retry_after_s": retry_after,
        },
    )
    raise RateLimitExceededAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
        details={
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
            "retry_after": retry_after,
        },
    )
