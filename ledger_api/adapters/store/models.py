"""SQLAlchemy model for persisted transactions."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from ledger_api.core.validation import AMOUNT_SCALE


class Money(TypeDecorator):
    """Exact decimal amount stored as integer minor units (cents).

    Integer storage keeps sums exact on every backend, including SQLite,
    which has no native decimal type.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(Decimal(value).scaleb(AMOUNT_SCALE))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-AMOUNT_SCALE)


class Base(DeclarativeBase):
    pass


class TransactionRecord(Base):
    """One ledger entry; ``owner`` is indexed for listing and summaries."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_owner", "owner"),
        # Without AUTOINCREMENT SQLite may hand a deleted max id out again
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money(), nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[date] = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"<TransactionRecord(id={self.id}, owner={self.owner!r}, amount={self.amount})>"
