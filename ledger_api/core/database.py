"""Process-wide ledger store built from database settings."""

from __future__ import annotations

import logging

from ledger_api.adapters.store.base import AbstractLedgerStore
from ledger_api.adapters.store.sql import SqlLedgerStore, build_engine
from ledger_api.core.config import settings

logger = logging.getLogger(__name__)

_store: AbstractLedgerStore | None = None


def get_ledger_store() -> AbstractLedgerStore:
    """Return the shared ledger store, creating its engine on first use."""

    global _store

    if _store is None:
        engine = build_engine(
            settings.database.url,
            timeout_seconds=settings.database.timeout_seconds,
            echo=settings.database.echo,
        )
        _store = SqlLedgerStore(engine)
        logger.info("store.configured", extra={"dialect": engine.dialect.name})
    return _store


def dispose_ledger_store() -> None:
    """Release pooled connections and forget the shared store."""

    global _store

    if isinstance(_store, SqlLedgerStore):
        _store.engine.dispose()
    _store = None
