"""Pydantic schemas for transaction requests and responses."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# The create body is accepted raw and validated by the store after the rate
# limiter has admitted the request; these examples document its shape.
CREATE_BODY_EXAMPLES: dict[str, dict[str, Any]] = {
    "income": {
        "summary": "Income",
        "value": {"title": "Salary", "amount": 2000, "category": "Income", "owner": "u1"},
    },
    "expense": {
        "summary": "Expense (negative amount)",
        "value": {"title": "Rent", "amount": "-800.00", "category": "Housing", "owner": "u1"},
    },
    "legacy_owner_field": {
        "summary": "Owner sent as user_id",
        "value": {"title": "Coffee", "amount": -3.5, "category": "Food", "user_id": "u1"},
    },
}


def creation_fields(body: Any) -> dict[str, Any]:
    """Pull the raw create fields out of a request body without validating them.

    ``owner`` falls back to the legacy ``user_id`` key. A body that is not a
    JSON object yields all-None fields, which the store then rejects.
    """
    if not isinstance(body, Mapping):
        body = {}
    owner = body.get("owner")
    if owner is None:
        owner = body.get("user_id")
    return {
        "owner": owner,
        "title": body.get("title"),
        "amount": body.get("amount"),
        "category": body.get("category"),
    }


class TransactionOut(BaseModel):
    """A persisted transaction as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner: str
    title: str
    amount: Decimal = Field(..., description="Serialized as a decimal string, e.g. '-800.00'.")
    category: str
    created_at: date


class SummaryOut(BaseModel):
    """Totals for one owner. ``expenses`` is negative (sum of negative amounts)."""

    model_config = ConfigDict(from_attributes=True)

    balance: Decimal
    income: Decimal
    expenses: Decimal


class DeleteResponse(BaseModel):
    message: str = "Transaction deleted successfully"
    id: int
