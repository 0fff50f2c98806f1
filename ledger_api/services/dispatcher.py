"""Request dispatcher sequencing rate limiting and ledger operations.

Every operation consults the rate limiter first and only then touches the
store. A denial short-circuits with ``RateLimitExceededAppError`` and the
store is never reached; store errors propagate unchanged. The dispatcher
keeps no mutable state of its own.
"""

from __future__ import annotations

from typing import Any

from ledger_api.adapters.rate_limit.base import AbstractRateLimiter
from ledger_api.adapters.store.base import AbstractLedgerStore, LedgerSummary, Transaction
from ledger_api.core.rate_limit import check_rate_limit
from ledger_api.core.validation import parse_transaction_id


class LedgerDispatcher:
    """Compose a rate limiter and a ledger store into request operations."""

    def __init__(self, store: AbstractLedgerStore, limiter: AbstractRateLimiter | None = None) -> None:
        """Initialize the dispatcher.

        Args:
            store: Ledger store serving admitted requests.
            limiter: Rate limiter consulted first; None disables limiting.
        """
        self._store = store
        self._limiter = limiter

    def _admit(self, client_key: str) -> None:
        if self._limiter is not None:
            check_rate_limit(self._limiter, client_key)

    def list_transactions(self, client_key: str, owner: str) -> list[Transaction]:
        self._admit(client_key)
        return self._store.list_by_owner(owner)

    def create_transaction(
        self,
        client_key: str,
        *,
        owner: Any,
        title: Any,
        amount: Any,
        category: Any,
    ) -> Transaction:
        self._admit(client_key)
        return self._store.create(owner, title, amount, category)

    def delete_transaction(self, client_key: str, raw_id: Any) -> int:
        """Delete a transaction by its raw path id.

        Returns:
            The parsed id that was deleted.

        Raises:
            ValidationAppError: For non-numeric ids, before the store is touched.
            NotFoundAppError: When no transaction has that id.
        """
        self._admit(client_key)
        transaction_id = parse_transaction_id(raw_id)
        self._store.delete_by_id(transaction_id)
        return transaction_id

    def summarize(self, client_key: str, owner: str) -> LedgerSummary:
        self._admit(client_key)
        return self._store.summarize(owner)
