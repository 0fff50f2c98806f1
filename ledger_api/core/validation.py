"""Input validation for ledger operations.

Pure functions without FastAPI or database dependencies so the store can
validate its own inputs whatever the caller. Every failure raises
``ValidationAppError`` whose ``details.field`` names the offending field.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any

from ledger_api.core.errors import ValidationAppError

MAX_TEXT_LENGTH = 255
# Matches the original DECIMAL(10, 2) column.
AMOUNT_SCALE = 2
MAX_ABS_AMOUNT = Decimal("99999999.99")
CENT = Decimal(1).scaleb(-AMOUNT_SCALE)

# Largest id a signed 64-bit primary key can hold.
MAX_TRANSACTION_ID = 2**63 - 1
_ID_PATTERN = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class NewTransaction:
    """Validated, normalized input for creating a transaction."""

    owner: str
    title: str
    amount: Decimal
    category: str


def _invalid(field: str, reason: str, message: str) -> ValidationAppError:
    return ValidationAppError(
        code="validation_error",
        message=message,
        details={"field": field, "reason": reason},
    )


def require_text(value: Any, field: str) -> str:
    """Return ``value`` stripped, or raise when missing, blank or too long."""
    if value is None:
        raise _invalid(field, "missing", f"Missing required field: {field}")
    if not isinstance(value, str):
        raise _invalid(field, "not_a_string", f"Field '{field}' must be a string")
    text = value.strip()
    if not text:
        raise _invalid(field, "empty", f"Field '{field}' must not be empty")
    if len(text) > MAX_TEXT_LENGTH:
        raise _invalid(
            field,
            "too_long",
            f"Field '{field}' must be at most {MAX_TEXT_LENGTH} characters",
        )
    return text


def parse_amount(value: Any) -> Decimal:
    """Convert a client-supplied amount to an exact Decimal.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion.

    Raises:
        ValidationAppError: If the amount is missing, non-numeric, not finite,
            has more than two fractional digits or is out of range.
    """
    if value is None:
        raise _invalid("amount", "missing", "Missing required field: amount")
    if isinstance(value, bool):
        raise _invalid("amount", "not_a_number", "Field 'amount' must be a number")

    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float)):
            amount = Decimal(str(value))
        elif isinstance(value, str) and value.strip():
            amount = Decimal(value.strip())
        else:
            raise _invalid("amount", "not_a_number", "Field 'amount' must be a number")
    except InvalidOperation as exc:
        raise _invalid("amount", "not_a_number", "Field 'amount' must be a number") from exc

    if not amount.is_finite():
        raise _invalid("amount", "not_finite", "Field 'amount' must be a finite number")
    if abs(amount) > MAX_ABS_AMOUNT:
        raise _invalid(
            "amount",
            "out_of_range",
            f"Field 'amount' must be between -{MAX_ABS_AMOUNT} and {MAX_ABS_AMOUNT}",
        )
    if amount != amount.quantize(CENT, rounding=ROUND_DOWN):
        raise _invalid(
            "amount",
            "too_precise",
            f"Field 'amount' supports at most {AMOUNT_SCALE} decimal places",
        )
    amount = amount.quantize(CENT)
    if amount.is_zero():
        # "-0" is stored as 0 cents; never hand back a signed zero
        amount = amount.copy_abs()
    return amount


def validate_new_transaction(owner: Any, title: Any, amount: Any, category: Any) -> NewTransaction:
    """Validate all create inputs, reporting the first invalid field.

    Fields are checked in request-body order: title, amount, category, owner.
    """
    clean_title = require_text(title, "title")
    clean_amount = parse_amount(amount)
    clean_category = require_text(category, "category")
    clean_owner = require_text(owner, "owner")
    return NewTransaction(
        owner=clean_owner,
        title=clean_title,
        amount=clean_amount,
        category=clean_category,
    )


def parse_transaction_id(raw: Any) -> int:
    """Parse a transaction id from a path segment.

    Raises:
        ValidationAppError: If the id is not a non-negative integer that fits
            the primary key column.
    """
    if isinstance(raw, bool):
        raise _invalid("id", "not_numeric", "Transaction id must be numeric")
    if isinstance(raw, int):
        text = str(raw)
    elif isinstance(raw, str):
        text = raw.strip()
    else:
        raise _invalid("id", "not_numeric", "Transaction id must be numeric")

    if not _ID_PATTERN.match(text):
        raise _invalid("id", "not_numeric", "Transaction id must be numeric")

    transaction_id = int(text)
    if transaction_id > MAX_TRANSACTION_ID:
        raise _invalid("id", "out_of_range", "Transaction id is out of range")
    return transaction_id
