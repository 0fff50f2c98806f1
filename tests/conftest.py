"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It points the application at an in-memory database and the testing
environment before any module reads settings.
"""

import os
from datetime import date, timedelta
from typing import Iterator

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_RATE_LIMIT_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ledger_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from ledger_api.adapters.store.sql import SqlLedgerStore, build_engine
from ledger_api.api.dependencies import get_dispatcher
from ledger_api.core.app_factory import create_app
from ledger_api.core.rate_limit import reset_rate_limiter
from ledger_api.services.dispatcher import LedgerDispatcher


class FakeCalendar:
    """Deterministic creation dates for ordering tests."""

    def __init__(self, start: date = date(2024, 1, 1)) -> None:
        self.current = start

    def today(self) -> date:
        return self.current

    def advance(self, days: int = 1) -> None:
        self.current += timedelta(days=days)


class FakeClock:
    """Deterministic clock for limiter window tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def store(calendar: FakeCalendar) -> Iterator[SqlLedgerStore]:
    """Fresh in-memory ledger store with its schema in place."""
    engine = build_engine("sqlite://")
    ledger = SqlLedgerStore(engine, today=calendar.today)
    ledger.ensure_schema()
    yield ledger
    engine.dispose()


@pytest.fixture
def limiter() -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(limit=100, window_seconds=60)


@pytest.fixture(autouse=True)
def _fresh_global_limiter() -> Iterator[None]:
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest.fixture
def client(app: FastAPI, store: SqlLedgerStore, limiter: InMemoryFixedWindowRateLimiter) -> Iterator[TestClient]:
    """Test client whose routes use the fixture store and limiter."""
    app.dependency_overrides[get_dispatcher] = lambda: LedgerDispatcher(store=store, limiter=limiter)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
