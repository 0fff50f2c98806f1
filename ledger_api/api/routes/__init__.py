from __future__ import annotations

from ledger_api.api.routes.health import router as health_router
from ledger_api.api.routes.transactions import router as transactions_router

__all__ = ["health_router", "transactions_router"]
