"""Ledger store adapters."""

from ledger_api.adapters.store.base import AbstractLedgerStore, LedgerSummary, Transaction
from ledger_api.adapters.store.sql import SqlLedgerStore, build_engine

__all__ = [
    "AbstractLedgerStore",
    "LedgerSummary",
    "SqlLedgerStore",
    "Transaction",
    "build_engine",
]
