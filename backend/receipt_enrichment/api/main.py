"""Entry point for the FastAPI application.

``create_app`` constructs the FastAPI app, includes the routers and wires
the lifespan that opens and closes the database.  Collaborators may be
injected (tests pass an in-memory ``Database`` and a fake enrichment
client); anything not injected is built from ``receipt_enrichment.core.config``
at startup.  When run with uvicorn the module-level ``app`` is used.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from receipt_enrichment.api.endpoints.health import router as health_router
from receipt_enrichment.api.error_handlers import (
    conflict_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    input_error_handler,
    unavailable_exception_handler,
    validation_exception_handler,
)
from receipt_enrichment.api.routes.receipts import router as receipts_router
from receipt_enrichment.core.config import Settings, settings as default_settings
from receipt_enrichment.core.database import Database
from receipt_enrichment.core.exceptions import (
    InputError,
    PersistenceConflictError,
    PersistenceUnavailableError,
)
from receipt_enrichment.core.observability import init_sentry, sentry_enabled, sentry_set_tags
from receipt_enrichment.services.enrichment_service import EnrichmentClient, OpenAIEnrichmentClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _cors_origins(settings: Settings) -> list[str]:
    """CORS configuration.

    Logic:
    1. In development => allow all ( * ) for simplest DX.
    2. Otherwise start from BACKEND_CORS_ORIGINS.
    3. Deduplicate while preserving order.
    """
    env_is_dev = (settings.ENVIRONMENT or "development").lower() == "development"
    if env_is_dev:
        return ["*"]
    seen: set[str] = set()
    return [o for o in (settings.BACKEND_CORS_ORIGINS or []) if not (o in seen or seen.add(o))]


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    enrichment_client: Optional[EnrichmentClient] = None,
) -> FastAPI:
    cfg = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        # Startup
        logger.info("Starting up...")
        # Centralised Sentry init (idempotent)
        if init_sentry("receipt-enrichment", cfg):
            logger.info("Sentry SDK initialized (api)")
        owns_database = app.state.database is None
        if owns_database:
            app.state.database = Database.from_settings(cfg)
        await app.state.database.create_all()
        yield
        # Shutdown
        logger.info("Shutting down...")
        if owns_database:
            await app.state.database.dispose()
            app.state.database = None

    app = FastAPI(
        title=cfg.PROJECT_NAME,
        version=cfg.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.database = database
    app.state.enrichment_client = enrichment_client or OpenAIEnrichmentClient(cfg)

    # Middleware to enrich Sentry scope with lightweight request info
    @app.middleware("http")
    async def sentry_context_middleware(request: Request, call_next):  # type: ignore
        if sentry_enabled(cfg):
            sentry_set_tags({"path": request.url.path, "method": request.method})
        response = await call_next(request)
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(cfg),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register custom exception handlers
    app.add_exception_handler(InputError, input_error_handler)
    app.add_exception_handler(PersistenceConflictError, conflict_exception_handler)
    app.add_exception_handler(PersistenceUnavailableError, unavailable_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Include routers
    app.include_router(receipts_router)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"Welcome to the {cfg.PROJECT_NAME}", "version": cfg.VERSION}

    return app


app = create_app()
