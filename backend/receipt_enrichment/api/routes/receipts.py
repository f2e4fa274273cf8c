"""API routes for receipt ingestion and retrieval."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from receipt_enrichment.api.dependencies import get_receipt_service
from receipt_enrichment.core.exceptions import FieldError, InputError
from receipt_enrichment.core.observability import sentry_breadcrumb, sentry_set_tags
from receipt_enrichment.models.schemas import (
    ReceiptIngestResponse,
    ReceiptRead,
    ValidationErrorResponse,
)
from receipt_enrichment.services.receipt_service import ReceiptService

router = APIRouter(prefix="/receipt", tags=["receipts"])


async def _read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise InputError(
            [FieldError(field="", message="Request body is not valid JSON", code="invalid_json")]
        ) from None


@router.post(
    "",
    response_model=ReceiptIngestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ValidationErrorResponse}},
)
async def ingest_receipt(
    request: Request,
    enrich: bool = Query(False, description="Call the enrichment model even when brand and category are present"),
    service: ReceiptService = Depends(get_receipt_service),
) -> ReceiptIngestResponse:
    """Ingest one receipt line item, enriching it when fields are missing."""
    raw = await _read_json_body(request)
    stored, enrichment = await service.ingest(raw, force_enrichment=enrich)
    sentry_set_tags({"receipt_id": stored.receipt_id})
    sentry_breadcrumb(
        category="receipt",
        message="receipt ingested",
        data={"receipt_id": stored.receipt_id, "enriched": enrichment is not None},
    )
    return ReceiptIngestResponse(
        receipt_id=stored.receipt_id,
        enrichment=enrichment,
    )


@router.get("/{receipt_id}", response_model=ReceiptRead)
async def get_receipt(
    receipt_id: str,
    service: ReceiptService = Depends(get_receipt_service),
) -> ReceiptRead:
    """Get a specific receipt by its external identifier."""
    receipt = await service.get(receipt_id)
    if receipt is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "Receipt not found",
                "message": f"No receipt found with receipt_id: {receipt_id}",
            },
        )
    return ReceiptRead.model_validate(receipt)
