"""Ledger store interface and the immutable records it hands out.

The store exclusively owns persisted transactions. Callers receive frozen
``Transaction`` snapshots, never live ORM rows, so nothing outside the store
can mutate a record.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class Transaction:
    """A single persisted ledger entry.

    Attributes:
        id: Store-assigned identifier, never reused after deletion.
        owner: Identifier of the owning user.
        title: Short human-readable label.
        amount: Signed exact amount; positive is income, negative is expense.
        category: Free-form classification.
        created_at: Date the store persisted the record.
    """

    id: int
    owner: str
    title: str
    amount: Decimal
    category: str
    created_at: date


@dataclass(frozen=True)
class LedgerSummary:
    """Aggregate totals for one owner.

    ``expenses`` keeps the negative sign of the amounts it sums, so
    ``balance == income + expenses`` always holds exactly.
    """

    balance: Decimal
    income: Decimal
    expenses: Decimal


class AbstractLedgerStore(ABC):
    """Interface for transaction persistence."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the backing table and indexes if they are missing."""
        raise NotImplementedError

    @abstractmethod
    def list_by_owner(self, owner: str) -> list[Transaction]:
        """Return the owner's transactions, newest first (id breaks ties)."""
        raise NotImplementedError

    @abstractmethod
    def create(self, owner: str, title: str, amount: Decimal | int | str, category: str) -> Transaction:
        """Validate, persist and return a new transaction."""
        raise NotImplementedError

    @abstractmethod
    def delete_by_id(self, transaction_id: int) -> None:
        """Delete one transaction; raise NotFoundAppError when absent."""
        raise NotImplementedError

    @abstractmethod
    def summarize(self, owner: str) -> LedgerSummary:
        """Return balance, income and expenses for the owner."""
        raise NotImplementedError
