"""SQL-backed ledger store using SQLAlchemy.

Every operation opens its own session and transaction, so the store is safe
to share between threads. All statements are built with SQLAlchemy
constructs and bound parameters; no value is ever interpolated into SQL text.
Driver and connection failures surface as ``StoreUnavailableAppError``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal

from sqlalchemy import case, create_engine, delete, func, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_api.adapters.store.base import AbstractLedgerStore, LedgerSummary, Transaction
from ledger_api.adapters.store.models import Base, Money, TransactionRecord
from ledger_api.core.errors import NotFoundAppError, StoreUnavailableAppError
from ledger_api.core.validation import CENT, MAX_TEXT_LENGTH, validate_new_transaction

logger = logging.getLogger(__name__)

ZERO = Decimal(0).quantize(CENT)


def build_engine(url: str, *, timeout_seconds: float = 5.0, echo: bool = False) -> Engine:
    """Create an engine whose connections give up after ``timeout_seconds``.

    SQLite gets a busy timeout and cross-thread connections; an in-memory
    SQLite URL uses a single shared connection so every thread sees the same
    database. Other drivers receive a connect timeout.
    """
    parsed = make_url(url)
    kwargs: dict = {"echo": echo}

    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout_seconds}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["connect_args"] = {"connect_timeout": max(1, int(timeout_seconds))}
        kwargs["pool_pre_ping"] = True
        kwargs["pool_timeout"] = timeout_seconds

    return create_engine(url, **kwargs)


def _stored_owner(owner: object) -> str | None:
    """Owner as it would have been stored on create, or None if it never could be."""
    if not isinstance(owner, str):
        return None
    owner = owner.strip()
    if not owner or len(owner) > MAX_TEXT_LENGTH:
        return None
    return owner


def _to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        owner=record.owner,
        title=record.title,
        amount=record.amount,
        category=record.category,
        created_at=record.created_at,
    )


class SqlLedgerStore(AbstractLedgerStore):
    """Ledger store persisting transactions in a relational database."""

    def __init__(self, engine: Engine, *, today: Callable[[], date] = date.today) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine (see ``build_engine``).
            today: Source of the creation date assigned on insert.
        """
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._today = today

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Yield a session inside a transaction, translating driver failures."""
        try:
            with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as exc:
            logger.error(
                "store.unavailable",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise StoreUnavailableAppError(
                code="store_unavailable",
                message="Ledger store is temporarily unavailable",
                details={"reason": operation},
            ) from exc

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(self._engine, checkfirst=True)
        except SQLAlchemyError as exc:
            logger.error("store.schema_failed", extra={"error_type": type(exc).__name__})
            raise StoreUnavailableAppError(
                code="store_unavailable",
                message="Could not initialize the ledger schema",
                details={"reason": "ensure_schema"},
            ) from exc
        logger.info("store.schema_ready", extra={"table": TransactionRecord.__tablename__})

    def list_by_owner(self, owner: str) -> list[Transaction]:
        owner = _stored_owner(owner)
        if owner is None:
            return []
        stmt = (
            select(TransactionRecord)
            .where(TransactionRecord.owner == owner)
            .order_by(TransactionRecord.created_at.desc(), TransactionRecord.id.desc())
        )
        with self._session("list_by_owner") as session:
            rows = session.scalars(stmt).all()
            transactions = [_to_transaction(row) for row in rows]

        logger.debug("store.list", extra={"count": len(transactions)})
        return transactions

    def create(self, owner: str, title: str, amount: Decimal | int | str, category: str) -> Transaction:
        new = validate_new_transaction(owner, title, amount, category)
        record = TransactionRecord(
            owner=new.owner,
            title=new.title,
            amount=new.amount,
            category=new.category,
            created_at=self._today(),
        )
        with self._session("create") as session:
            session.add(record)
            session.flush()
            transaction = _to_transaction(record)

        logger.info(
            "store.create",
            extra={"transaction_id": transaction.id, "category": transaction.category},
        )
        return transaction

    def delete_by_id(self, transaction_id: int) -> None:
        stmt = (
            delete(TransactionRecord)
            .where(TransactionRecord.id == transaction_id)
            .execution_options(synchronize_session=False)
        )
        with self._session("delete_by_id") as session:
            deleted = session.execute(stmt).rowcount

        if not deleted:
            raise NotFoundAppError(
                code="transaction_not_found",
                message="Transaction not found",
                details={"transaction_id": transaction_id},
            )
        logger.info("store.delete", extra={"transaction_id": transaction_id})

    def summarize(self, owner: str) -> LedgerSummary:
        owner = _stored_owner(owner)
        if owner is None:
            return LedgerSummary(balance=ZERO, income=ZERO, expenses=ZERO)
        amount = TransactionRecord.amount
        stmt = select(
            func.sum(amount, type_=Money()).label("balance"),
            func.sum(case((amount > 0, amount), else_=0), type_=Money()).label("income"),
            func.sum(case((amount < 0, amount), else_=0), type_=Money()).label("expenses"),
        ).where(TransactionRecord.owner == owner)

        with self._session("summarize") as session:
            row = session.execute(stmt).one()

        # SUM over no rows is NULL
        return LedgerSummary(
            balance=row.balance if row.balance is not None else ZERO,
            income=row.income if row.income is not None else ZERO,
            expenses=row.expenses if row.expenses is not None else ZERO,
        )
