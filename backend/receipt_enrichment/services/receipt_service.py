"""Ingestion and lookup use cases used by the receipt routes."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from receipt_enrichment.models.schemas import EnrichmentResult
from receipt_enrichment.models.tables import Receipt
from receipt_enrichment.services.receipt_repository import ReceiptRepository
from receipt_enrichment.services.reconciliation import ReconciliationEngine


class ReceiptService:
    def __init__(self, engine: ReconciliationEngine, repository: ReceiptRepository) -> None:
        self.engine = engine
        self.repository = repository

    async def ingest(self, raw: Any, force_enrichment: bool = False) -> Tuple[Receipt, Optional[EnrichmentResult]]:
        """Normalize, reconcile and persist one receipt.

        Returns the stored row together with the enrichment result (``None``
        when enrichment was skipped) so the caller can echo it back.
        """
        record, enrichment = await self.engine.normalize_and_reconcile_with_result(raw, force_enrichment)
        stored = await self.repository.insert(record)
        return stored, enrichment

    async def get(self, receipt_id: str) -> Optional[Receipt]:
        return await self.repository.get(receipt_id)
