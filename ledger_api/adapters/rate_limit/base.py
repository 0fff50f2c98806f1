"""Rate limiter interfaces.

The dispatcher depends on this abstraction (not a concrete implementation)
so the counter store can be per-process memory or a shared Redis instance.

All implementations use a fixed window anchored at the first admitted request
of each key. A fixed window tolerates a boundary burst: a client may be
admitted up to ``2 * limit`` times across the instant one window ends and the
next begins, but never more than ``limit`` within a single window.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit consume operation.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window ends.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for keyed rate limiters."""

    #: Short name of the counter store, used in logs and error details.
    backend: str = "abstract"

    def __init__(self, *, limit: int, window_seconds: int) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        self._limit = limit
        self._window_seconds = window_seconds

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    @staticmethod
    def _validate_consume_args(key: str, cost: int) -> None:
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Atomically check and consume budget for a given key.

        Args:
            key: Identity being throttled (e.g., client address).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether the request was admitted.

        Raises:
            ValueError: If key is empty or cost is invalid.
            LimiterUnavailableAppError: If the counter store cannot be reached.
        """
        raise NotImplementedError

    def admit(self, key: str) -> bool:
        """Return whether a single request for ``key`` is admitted."""
        return self.consume(key).allowed
