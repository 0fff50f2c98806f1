"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.

Error kinds and their HTTP mapping:
- ValidationAppError → 400 (bad or missing input, never reaches persistence)
- NotFoundAppError → 404 (referenced transaction id is absent)
- RateLimitExceededAppError → 429 (limiter denied the request)
- LimiterUnavailableAppError → 503 (counter store unreachable)
- StoreUnavailableAppError → 500 (persistence unreachable)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    field: str
    reason: str
    transaction_id: int
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    backend: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""


class NotFoundAppError(AppError):
    """Raised when a referenced record does not exist."""


class RateLimitExceededAppError(AppError):
    """Raised when the rate limiter denies a request."""


class LimiterUnavailableAppError(AppError):
    """Raised when the rate limiter's counter store cannot be reached."""


class StoreUnavailableAppError(AppError):
    """Raised when the ledger store cannot be reached or a query fails."""
