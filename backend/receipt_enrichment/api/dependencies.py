"""Common dependencies for FastAPI routes.

Everything a route needs is built per request from objects stored on
``app.state`` by ``create_app``: the ``Database`` and the enrichment
client.  Nothing here reaches into module-level singletons, so tests can
swap collaborators either through ``create_app`` arguments or through
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from receipt_enrichment.core.config import Settings, settings as default_settings
from receipt_enrichment.core.database import get_db
from receipt_enrichment.services.enrichment_service import EnrichmentClient, EnrichmentService
from receipt_enrichment.services.receipt_repository import ReceiptRepository
from receipt_enrichment.services.receipt_service import ReceiptService
from receipt_enrichment.services.reconciliation import ReconciliationEngine


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Alias for `get_db` to be imported in routers."""
    async for session in get_db(request):
        yield session


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or default_settings


def get_enrichment_client(request: Request) -> EnrichmentClient:
    client = getattr(request.app.state, "enrichment_client", None)
    if client is None:
        raise RuntimeError("Enrichment client has not been initialised for this application")
    return client


def get_receipt_repository(db: AsyncSession = Depends(get_db_session)) -> ReceiptRepository:
    return ReceiptRepository(db)


def get_reconciliation_engine(
    client: EnrichmentClient = Depends(get_enrichment_client),
    settings: Settings = Depends(get_settings),
) -> ReconciliationEngine:
    service = EnrichmentService(client, timeout=settings.ENRICHMENT_TIMEOUT_SECONDS)
    return ReconciliationEngine(service)


def get_receipt_service(
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
    repository: ReceiptRepository = Depends(get_receipt_repository),
) -> ReceiptService:
    return ReceiptService(engine, repository)
