"""Merge caller-supplied receipt fields with model enrichment.

``ReconciliationEngine`` is the decision core of ingestion.  Given a
``NormalizedReceipt`` it decides whether enrichment is needed, calls the
``EnrichmentService`` when it is, and folds the outcome into one flat
``ReceiptRecord`` ready for insertion.

Precedence rules, applied per field:

* brand and category: the enriched value replaces the caller's only when
  the caller's value is missing or the model is highly confident, and
  never when the model answered with the ``"unknown"`` sentinel
* UPC, size, color, material, model, weight: enrichment only
* ``enriched_brand``: the standardized enriched brand when enrichment ran,
  otherwise the standardized caller brand

The engine holds no state besides its collaborators, so one instance can
serve concurrent requests.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from receipt_enrichment.models.enums import Confidence
from receipt_enrichment.models.schemas import (
    UNKNOWN,
    EnrichmentResult,
    NormalizedReceipt,
    ReceiptRecord,
)
from receipt_enrichment.services.enrichment_service import (
    EnrichmentDegraded,
    EnrichmentService,
    EnrichmentSucceeded,
)
from receipt_enrichment.services.normalizer import normalize_receipt
from receipt_enrichment.services.standardizer import normalize_merchant_name, standardize_brand

logger = logging.getLogger(__name__)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _is_unknown(value: Optional[str]) -> bool:
    return _is_blank(value) or value.strip().lower() == UNKNOWN


def brand_is_missing(brand: Optional[str]) -> bool:
    return _is_blank(brand)


def category_is_missing(category: Any) -> bool:
    """Null, an empty sequence or a blank string all count as missing."""
    if category is None:
        return True
    if isinstance(category, str):
        return not category.strip()
    if isinstance(category, (list, tuple)):
        return len(category) == 0
    return False


def needs_enrichment(receipt: NormalizedReceipt, force_enrichment: bool = False) -> bool:
    if _is_blank(receipt.product_description):
        return False
    return (
        force_enrichment
        or brand_is_missing(receipt.brand)
        or category_is_missing(receipt.product_category)
    )


def _may_override(existing_missing: bool, result: EnrichmentResult) -> bool:
    return existing_missing or result.confidence == Confidence.HIGH


def reconcile_brand(existing: Optional[str], result: Optional[EnrichmentResult]) -> Optional[str]:
    if result is None:
        return existing
    if _may_override(brand_is_missing(existing), result) and not _is_unknown(result.brand):
        return result.brand
    return existing


def reconcile_category(existing: Any, result: Optional[EnrichmentResult]) -> Any:
    if result is None:
        return existing
    if (
        _may_override(category_is_missing(existing), result)
        and result.category
        and not _is_unknown(result.category[0])
    ):
        return list(result.category)
    return existing


def build_record(receipt: NormalizedReceipt, result: Optional[EnrichmentResult]) -> ReceiptRecord:
    """Fold an optional enrichment result into an insert-ready record."""
    if result is None:
        enriched: dict[str, Any] = {"enriched_brand": standardize_brand(receipt.brand)}
    else:
        enriched = {
            "enriched_brand": standardize_brand(result.brand),
            "enriched_category": list(result.category),
            "enriched_upc": result.upc or None,
            "enriched_size": result.size or None,
            "enriched_color": result.color or None,
            "enriched_material": result.material or None,
            "enriched_model": result.model or None,
            "enriched_weight": result.weight or None,
            "enrichment_confidence": result.confidence,
        }
    return ReceiptRecord(
        receipt_id=receipt.receipt_id,
        product_id=receipt.product_id,
        receipt_created_timestamp=receipt.receipt_created_timestamp,
        merchant_name=receipt.merchant_name,
        canonical_merchant_name=normalize_merchant_name(receipt.merchant_name),
        product_description=receipt.product_description,
        brand=reconcile_brand(receipt.brand, result),
        product_category=reconcile_category(receipt.product_category, result),
        total_price_paid=receipt.total_price_paid,
        product_code=receipt.product_code,
        product_image_url=receipt.product_image_url,
        **enriched,
    )


class ReconciliationEngine:
    """Decides on, performs and merges enrichment for one receipt at a time."""

    def __init__(self, enrichment_service: EnrichmentService) -> None:
        self.enrichment_service = enrichment_service

    async def reconcile(
        self,
        receipt: NormalizedReceipt,
        force_enrichment: bool = False,
    ) -> Tuple[ReceiptRecord, Optional[EnrichmentResult]]:
        if not needs_enrichment(receipt, force_enrichment):
            logger.info("Enrichment skipped receipt_id=%s", receipt.receipt_id)
            return build_record(receipt, None), None

        logger.info(
            "Enrichment invoked receipt_id=%s forced=%s",
            receipt.receipt_id,
            force_enrichment,
        )
        outcome = await self.enrichment_service.enrich(
            receipt.product_description,
            receipt.merchant_name,
            existing_brand=receipt.brand,
            existing_product_code=receipt.product_code,
        )
        match outcome:
            case EnrichmentSucceeded(result=result):
                pass
            case EnrichmentDegraded(reason=reason, result=result):
                logger.warning(
                    "Using degraded enrichment receipt_id=%s reason=%s",
                    receipt.receipt_id,
                    type(reason).__name__,
                )

        record = build_record(receipt, result)
        logger.info(
            "Reconciled receipt_id=%s confidence=%s brand_adopted=%s category_adopted=%s",
            receipt.receipt_id,
            record.enrichment_confidence,
            record.brand != receipt.brand,
            record.product_category != receipt.product_category,
        )
        return record, result

    async def normalize_and_reconcile(
        self,
        raw: Mapping[str, Any],
        force_enrichment: bool = False,
    ) -> ReceiptRecord:
        """Normalize an untrusted body and reconcile it into an insert-ready record.

        Raises ``InputError`` for malformed input; enrichment failures never
        propagate.
        """
        record, _ = await self.normalize_and_reconcile_with_result(raw, force_enrichment)
        return record

    async def normalize_and_reconcile_with_result(
        self,
        raw: Mapping[str, Any],
        force_enrichment: bool = False,
    ) -> Tuple[ReceiptRecord, Optional[EnrichmentResult]]:
        """Like ``normalize_and_reconcile`` but also returns the enrichment result."""
        receipt = normalize_receipt(raw)
        logger.info("Normalized receipt_id=%s", receipt.receipt_id)
        return await self.reconcile(receipt, force_enrichment)
