"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain, request validation and unexpected) and return consistent JSON
responses with proper HTTP status codes and traceability.

Design:
- AppError subclasses → appropriate HTTP status (400, 404, 429, 500, 503)
- RequestValidationError → 400 naming the offending field
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ledger_api.core.config import settings
from ledger_api.core.errors import (
    AppError,
    LimiterUnavailableAppError,
    NotFoundAppError,
    RateLimitExceededAppError,
    StoreUnavailableAppError,
)
from ledger_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (NotFoundAppError, 404),
    (RateLimitExceededAppError, 429),
    (LimiterUnavailableAppError, 503),
    (StoreUnavailableAppError, 500),
)


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code (400 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _rate_limit_headers(exc: RateLimitExceededAppError) -> dict[str, str]:
    if not settings.app.rate_limit_include_headers or not exc.details:
        return {}

    details = exc.details
    headers: dict[str, str] = {}
    if "retry_after" in details:
        headers["Retry-After"] = str(details["retry_after"])
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
    if "remaining" in details:
        headers["X-RateLimit-Remaining"] = str(details["remaining"])
    if "reset_at" in details:
        headers["X-RateLimit-Reset"] = str(details["reset_at"])
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Client-caused errors are logged as warnings; infrastructure errors
    (5xx) are logged as errors.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers = None
    if isinstance(exc, RateLimitExceededAppError):
        headers = _rate_limit_headers(exc) or None

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


def _first_invalid_field(exc: RequestValidationError) -> str:
    for error in exc.errors():
        names = [part for part in error.get("loc", ()) if isinstance(part, str) and part != "body"]
        if names:
            return names[-1]
    return "body"


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body/path validation failures as 400 validation errors."""
    field = _first_invalid_field(exc)
    reasons = [error.get("msg", "") for error in exc.errors()]

    logger.warning(
        "request_validation_failed",
        extra={
            "field": field,
            "error_count": len(reasons),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "validation_error",
                "message": f"Missing or invalid field: {field}",
                "request_id": get_request_id(),
                "details": {"field": field, "reason": "; ".join(r for r in reasons if r)},
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
