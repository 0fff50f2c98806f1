"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
  Use the Redis limiter when several processes share one budget.
- Thread-safe with per-key locks: concurrent callers for the same key are
  serialized around check-and-increment, distinct keys never share a lock.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from ledger_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    window_start: float | None = None
    count: int = 0
    retired: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one fixed window per key in a local dict.

    A key's window opens at its first admitted request and lasts
    ``window_seconds``. Once elapsed, the next request opens a fresh window.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    backend = "memory"

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
        prune_threshold: int = 10_000,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Size of the window in seconds.
            clock: Time source function returning UNIX time in seconds.
            prune_threshold: Number of tracked keys above which expired
                windows are dropped on consume, at most once per window.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        super().__init__(limit=limit, window_seconds=window_seconds)
        self._clock = clock
        self._prune_threshold = prune_threshold
        self._state_by_key: dict[str, _WindowState] = {}
        self._prune_lock = threading.Lock()
        self._next_prune_at = float("-inf")

    def _state_for(self, key: str) -> _WindowState:
        state = self._state_by_key.get(key)
        if state is None:
            # dict.setdefault is atomic, so racing creators agree on one state
            state = self._state_by_key.setdefault(key, _WindowState())
        return state

    def _build_result(self, *, allowed: bool, now: float, state: _WindowState) -> RateLimitResult:
        reset_at = (state.window_start or now) + self._window_seconds
        retry_after = None
        if not allowed:
            retry_after = max(1, int(math.ceil(reset_at - now)))
        return RateLimitResult(
            allowed=allowed,
            limit=self._limit,
            remaining=max(0, self._limit - state.count),
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=retry_after,
        )

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Check the key's window and count the request when it fits.

        Args:
            key: Unique identifier for rate limiting (e.g., client address).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        self._validate_consume_args(key, cost)

        if len(self._state_by_key) > self._prune_threshold and self._clock() >= self._next_prune_at:
            self.prune_expired()

        while True:
            state = self._state_for(key)
            with state.lock:
                if state.retired:
                    # Pruned between lookup and lock; resolve the key again
                    continue

                now = self._clock()
                if state.window_start is None or now >= state.window_start + self._window_seconds:
                    state.window_start = now
                    state.count = 0

                if state.count + cost <= self._limit:
                    state.count += cost
                    return self._build_result(allowed=True, now=now, state=state)

                return self._build_result(allowed=False, now=now, state=state)

    def prune_expired(self) -> int:
        """Drop windows that have fully elapsed.

        Returns:
            Number of keys removed.
        """
        if not self._prune_lock.acquire(blocking=False):
            return 0
        try:
            now = self._clock()
            # Every window still open now has expired by then
            self._next_prune_at = now + self._window_seconds
            removed = 0
            for key, state in list(self._state_by_key.items()):
                with state.lock:
                    expired = (
                        state.window_start is None
                        or now >= state.window_start + self._window_seconds
                    )
                    if expired and self._state_by_key.get(key) is state:
                        del self._state_by_key[key]
                        # Late holders of this state must re-resolve the key
                        state.retired = True
                        removed += 1
            if removed:
                logger.debug(
                    "rate_limit.pruned",
                    extra={"removed": removed, "tracked_keys": len(self._state_by_key)},
                )
            return removed
        finally:
            self._prune_lock.release()

    def tracked_keys(self) -> int:
        return len(self._state_by_key)
