"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from ledger_api.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired to an in-memory stream with the production filters."""

    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_sensitive_filter_redacts_connection_strings(capture):
    """Ensure database and redis URLs never reach the log output."""

    logger, stream = capture
    logger.info(
        "store.configured",
        extra={
            "database_url": "postgresql://ledger:hunter2@db/ledger",
            "redis_url": "redis://:s3cret@cache:6379/0",
            "backend": "redis",
        },
    )

    output = stream.getvalue()

    assert "hunter2" not in output
    assert "s3cret" not in output
    assert "[REDACTED]" in output
    assert "redis" in json.loads(output)["backend"]


def test_sensitive_filter_redacts_client_addresses(capture):
    logger, stream = capture
    logger.warning("rate_limit.denied", extra={"client_ip": "203.0.113.7", "limit": 100})

    payload = json.loads(stream.getvalue())

    assert payload["client_ip"] == "[REDACTED]"
    assert payload["limit"] == 100


def test_sensitive_filter_allows_safe_fields(capture):
    """Verify safe fields pass through unmodified."""

    logger, stream = capture
    logger.info(
        "http.request",
        extra={
            "request_id": "req-123",
            "path": "/api/transactions/u1",
            "status_code": 200,
            "duration_ms": 150.5,
        },
    )

    output = stream.getvalue()

    assert "req-123" in output
    assert "/api/transactions/u1" in output
    assert "200" in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts(capture):
    """Ensure nested sensitive fields are redacted."""

    logger, stream = capture
    logger.info(
        "nested_event",
        extra={
            "headers": {
                "authorization": "Bearer secret-token",
                "user-agent": "pytest",
            },
            "safe_data": {
                "count": 5,
                "type": "test",
            },
        },
    )

    output = stream.getvalue()

    assert "secret-token" not in output
    assert "[REDACTED]" in output
    assert "pytest" in output
    assert "test" in output


def test_request_id_from_context_is_attached(capture):
    logger, stream = capture
    set_request_id("ctx-42")

    logger.info("with_context")

    assert json.loads(stream.getvalue())["request_id"] == "ctx-42"


def test_decimal_extras_are_serialized(capture):
    from decimal import Decimal

    logger, stream = capture
    logger.info("transaction.created", extra={"amount": Decimal("-800.00")})

    assert json.loads(stream.getvalue())["amount"] == "-800.00"


def test_redact_handles_lists_of_mappings():
    value = [{"password": "x", "name": "a"}, ("keep",)]

    assert redact(value) == [{"password": "[REDACTED]", "name": "a"}, ("keep",)]
