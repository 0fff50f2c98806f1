"""FastAPI dependencies shared by the ledger routes."""

from __future__ import annotations

from fastapi import Request

from ledger_api.core.database import get_ledger_store
from ledger_api.core.rate_limit import build_rate_limit_key, get_rate_limiter
from ledger_api.services.dispatcher import LedgerDispatcher


def get_dispatcher() -> LedgerDispatcher:
    """Dispatcher over the shared store and the configured limiter."""
    return LedgerDispatcher(store=get_ledger_store(), limiter=get_rate_limiter())


def get_client_key(request: Request) -> str:
    """Rate limit identity of the caller."""
    return build_rate_limit_key(request)
