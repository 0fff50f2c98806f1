"""Runs the limiter's Lua script on an in-process Redis server (fakeredis)."""

import threading

import fakeredis
import pytest

from ledger_api.adapters.rate_limit.redis_store import RedisFixedWindowRateLimiter


@pytest.fixture
def server():
    return fakeredis.FakeServer()


def _limiter(server, *, limit: int = 2, window_seconds: int = 60) -> RedisFixedWindowRateLimiter:
    return RedisFixedWindowRateLimiter(
        limit=limit,
        window_seconds=window_seconds,
        client=fakeredis.FakeRedis(server=server),
        key_prefix="test:rl:",
    )


def test_two_admitted_then_denied_without_incrementing(server) -> None:
    limiter = _limiter(server, limit=2)

    decisions = [limiter.consume("k").allowed for _ in range(4)]

    assert decisions == [True, True, False, False]
    assert fakeredis.FakeRedis(server=server).get("test:rl:k") == b"2"


def test_remaining_counts_down(server) -> None:
    limiter = _limiter(server, limit=3)

    assert [limiter.consume("k").remaining for _ in range(3)] == [2, 1, 0]


def test_keys_are_isolated(server) -> None:
    limiter = _limiter(server, limit=1)

    assert limiter.consume("a").allowed is True
    assert limiter.consume("a").allowed is False
    assert limiter.consume("b").allowed is True


def test_first_request_sets_window_expiry(server) -> None:
    limiter = _limiter(server, window_seconds=60)

    limiter.consume("k")

    ttl_ms = fakeredis.FakeRedis(server=server).pttl("test:rl:k")
    assert 0 < ttl_ms <= 60_000


def test_denial_reports_remaining_window(server) -> None:
    limiter = _limiter(server, limit=1, window_seconds=60)
    limiter.consume("k")

    denied = limiter.consume("k")

    assert denied.allowed is False
    assert 1 <= denied.retry_after_seconds <= 60


def test_expired_counter_opens_a_new_window(server) -> None:
    limiter = _limiter(server, limit=1)
    limiter.consume("k")
    assert limiter.consume("k").allowed is False

    # Stand-in for PEXPIRE firing at the end of the window
    fakeredis.FakeRedis(server=server).delete("test:rl:k")

    assert limiter.consume("k").allowed is True


def test_counter_without_ttl_gets_one(server) -> None:
    client = fakeredis.FakeRedis(server=server)
    client.set("test:rl:k", 5)
    limiter = _limiter(server, limit=2)

    assert limiter.consume("k").allowed is False
    assert client.pttl("test:rl:k") > 0


def test_concurrent_workers_admit_at_most_limit(server) -> None:
    limit = 5
    # One limiter (and client) per thread, as separate worker processes would have
    limiters = [_limiter(server, limit=limit) for _ in range(30)]
    barrier = threading.Barrier(len(limiters))
    admitted: list[bool] = []
    lock = threading.Lock()

    def worker(limiter: RedisFixedWindowRateLimiter) -> None:
        barrier.wait()
        allowed = limiter.consume("shared").allowed
        with lock:
            admitted.append(allowed)

    threads = [threading.Thread(target=worker, args=(limiter,)) for limiter in limiters]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(admitted) == 30
    assert sum(admitted) == limit
