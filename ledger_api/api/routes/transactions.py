from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status

from ledger_api.api.dependencies import get_client_key, get_dispatcher
from ledger_api.schemas.transactions import (
    CREATE_BODY_EXAMPLES,
    DeleteResponse,
    SummaryOut,
    TransactionOut,
    creation_fields,
)
from ledger_api.services.dispatcher import LedgerDispatcher

router = APIRouter(prefix="/transactions", tags=["Transactions"])

DispatcherDep = Annotated[LedgerDispatcher, Depends(get_dispatcher)]
ClientKeyDep = Annotated[str, Depends(get_client_key)]


# Registered before "/{owner}" so "summary" is never captured as an owner.
@router.get("/summary/{owner}", response_model=SummaryOut)
def get_summary(owner: str, dispatcher: DispatcherDep, client_key: ClientKeyDep) -> SummaryOut:
    """Balance, income and expenses for one owner.

    ``expenses`` is the (negative) sum of negative amounts, so
    ``balance == income + expenses``. All three are ``"0.00"`` for an owner
    without transactions.
    """
    summary = dispatcher.summarize(client_key, owner)
    return SummaryOut.model_validate(summary)


@router.get("/{owner}", response_model=list[TransactionOut])
def list_transactions(owner: str, dispatcher: DispatcherDep, client_key: ClientKeyDep) -> list[TransactionOut]:
    """All transactions of an owner, most recent first."""
    transactions = dispatcher.list_transactions(client_key, owner)
    return [TransactionOut.model_validate(t) for t in transactions]


@router.post("", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def create_transaction(
    dispatcher: DispatcherDep,
    client_key: ClientKeyDep,
    body: Annotated[Any, Body(openapi_examples=CREATE_BODY_EXAMPLES)] = None,
) -> TransactionOut:
    """Create a transaction.

    Returns 400 naming the first missing or invalid field among
    ``title``, ``amount``, ``category`` and ``owner``.
    """
    transaction = dispatcher.create_transaction(client_key, **creation_fields(body))
    return TransactionOut.model_validate(transaction)


@router.delete("/{transaction_id}", response_model=DeleteResponse)
def delete_transaction(
    transaction_id: str,
    dispatcher: DispatcherDep,
    client_key: ClientKeyDep,
) -> DeleteResponse:
    """Delete a transaction by id (404 when unknown, 400 when non-numeric)."""
    deleted_id = dispatcher.delete_transaction(client_key, transaction_id)
    return DeleteResponse(id=deleted_id)
