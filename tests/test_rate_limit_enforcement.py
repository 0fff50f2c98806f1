"""Tests for rate limit wiring: limiter selection, keys and fail-open/closed."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from ledger_api.adapters.rate_limit.base import AbstractRateLimiter
from ledger_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ledger_api.adapters.rate_limit.redis_store import RedisFixedWindowRateLimiter
from ledger_api.core import rate_limit
from ledger_api.core.config import settings
from ledger_api.core.errors import LimiterUnavailableAppError, RateLimitExceededAppError


def _request(host: str | None = "10.0.0.1", headers: dict[str, str] | None = None) -> MagicMock:
    request = MagicMock()
    request.client = MagicMock(host=host) if host else None
    request.headers = headers or {}
    return request


class TestGetRateLimiter:
    def test_returns_cached_in_memory_limiter(self) -> None:
        first = rate_limit.get_rate_limiter()
        second = rate_limit.get_rate_limiter()

        assert isinstance(first, InMemoryFixedWindowRateLimiter)
        assert first is second
        assert first.limit == settings.app.rate_limit_requests

    def test_rebuilds_when_config_changes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = rate_limit.get_rate_limiter()
        monkeypatch.setattr(settings.app, "rate_limit_requests", 7)

        second = rate_limit.get_rate_limiter()

        assert second is not first
        assert second.limit == 7

    def test_concurrent_first_callers_share_one_limiter(self, monkeypatch: pytest.MonkeyPatch) -> None:
        real_build = rate_limit.build_rate_limiter

        def slow_build() -> AbstractRateLimiter:
            time.sleep(0.05)
            return real_build()

        monkeypatch.setattr(rate_limit, "build_rate_limiter", slow_build)
        barrier = threading.Barrier(8)
        seen: list[AbstractRateLimiter] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            limiter = rate_limit.get_rate_limiter()
            with lock:
                seen.append(limiter)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 8
        assert len({id(limiter) for limiter in seen}) == 1

    def test_disabled_returns_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

        assert rate_limit.get_rate_limiter() is None

    def test_redis_backend_requires_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_backend", "redis")
        monkeypatch.setattr(settings.app, "rate_limit_redis_url", None)

        with pytest.raises(ValueError):
            rate_limit.build_rate_limiter()

    def test_redis_backend_built_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_backend", "redis")
        monkeypatch.setattr(settings.app, "rate_limit_redis_url", "redis://localhost:6379/0")

        limiter = rate_limit.build_rate_limiter()

        assert isinstance(limiter, RedisFixedWindowRateLimiter)
        assert limiter.window_seconds == settings.app.rate_limit_window_seconds


class TestBuildRateLimitKey:
    def test_uses_client_address(self) -> None:
        assert rate_limit.build_rate_limit_key(_request("10.0.0.1")) == "ip:10.0.0.1"

    def test_unknown_client(self) -> None:
        assert rate_limit.build_rate_limit_key(_request(None)) == "ip:unknown"

    def test_ignores_forwarded_for_by_default(self) -> None:
        request = _request("10.0.0.1", {"X-Forwarded-For": "203.0.113.9"})

        assert rate_limit.build_rate_limit_key(request) == "ip:10.0.0.1"

    def test_uses_first_forwarded_hop_when_trusted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_trust_forwarded_for", True)
        request = _request("10.0.0.1", {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        assert rate_limit.build_rate_limit_key(request) == "ip:203.0.113.9"


class TestCheckRateLimit:
    def test_admitted_returns_result(self) -> None:
        limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60)

        result = rate_limit.check_rate_limit(limiter, "ip:a")

        assert result is not None
        assert result.allowed is True

    def test_denied_raises_with_details(self) -> None:
        limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=lambda: 1000.0)
        rate_limit.check_rate_limit(limiter, "ip:a")

        with pytest.raises(RateLimitExceededAppError) as exc_info:
            rate_limit.check_rate_limit(limiter, "ip:a")

        details = exc_info.value.details
        assert details["limit"] == 1
        assert details["remaining"] == 0
        assert details["retry_after"] == 60
        assert details["reset_at"] == 1060

    def test_unavailable_fails_closed_by_default(self) -> None:
        limiter = MagicMock(spec=AbstractRateLimiter)
        limiter.backend = "redis"
        limiter.consume.side_effect = LimiterUnavailableAppError(code="rate_limiter_unavailable", message="down")

        with pytest.raises(LimiterUnavailableAppError):
            rate_limit.check_rate_limit(limiter, "ip:a")

    def test_unavailable_admits_when_fail_open(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_fail_open", True)
        limiter = MagicMock(spec=AbstractRateLimiter)
        limiter.backend = "redis"
        limiter.consume.side_effect = LimiterUnavailableAppError(code="rate_limiter_unavailable", message="down")

        assert rate_limit.check_rate_limit(limiter, "ip:a") is None
