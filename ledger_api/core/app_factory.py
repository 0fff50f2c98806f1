from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ledger_api.api.routes import health_router, transactions_router
from ledger_api.core.config import settings
from ledger_api.core.database import dispose_ledger_store, get_ledger_store
from ledger_api.core.exception_handlers import setup_exception_handlers
from ledger_api.core.logging import configure_logging
from ledger_api.core.middleware import request_id_middleware
from ledger_api.core.openapi import TAGS_METADATA, apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Ensure the ledger schema exists before serving, release the pool after."""
    get_ledger_store().ensure_schema()
    logger.info("app.started", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        dispose_ledger_store()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Ledger API",
        description=(
            "Rate-limited ledger of monetary transactions keyed by owner: create, "
            "list (newest first), delete and summarize balance, income and expenses. "
            "Amounts are exact decimals serialized as strings; expenses are reported "
            "as a negative total."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(transactions_router, prefix=settings.app.api_prefix)
    app.include_router(health_router, prefix=settings.app.api_prefix)

    apply_openapi_customizations(app)

    return app
