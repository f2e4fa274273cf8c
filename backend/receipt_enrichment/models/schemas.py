"""Pydantic schemas for request and response models.

Pydantic models are used for validating and serialising data that
crosses the boundary of the service.  This module defines the input
contract (``ReceiptInput``), the typed record produced by the
normalizer (``NormalizedReceipt``), the structured output expected from
the language model (``EnrichmentResult``) and the API facing schemas.

Note that Pydantic schemas are intentionally separate from the ORM
models so that the shape exposed through the API can differ from what
is stored in the database.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic_core import PydanticCustomError

from .enums import Confidence
from receipt_enrichment.utils.helpers import parse_iso_datetime

UNKNOWN = "unknown"

_URL_ADAPTER = TypeAdapter(AnyUrl)


# ---------------------------------------------------------------------------
# Ingestion input


class ReceiptInput(BaseModel):
    """Canonical-key view of an ingestion request body.

    Keys must already be lower-cased (see ``services.normalizer``).
    Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    receipt_id: str
    product_id: Optional[str] = None
    receipt_created_timestamp: Optional[str] = None
    merchant_name: Optional[str] = None
    product_description: Optional[str] = None
    brand: Optional[str] = None
    product_category: Optional[Union[List[str], str]] = None
    total_price_paid: Optional[Union[int, float, str]] = None
    product_code: Optional[str] = None
    product_image_url: Optional[str] = None

    @field_validator("receipt_id")
    @classmethod
    def receipt_id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise PydanticCustomError("too_small", "Receipt ID is required")
        return v

    @field_validator("receipt_created_timestamp")
    @classmethod
    def timestamp_is_iso(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and parse_iso_datetime(v) is None:
            raise PydanticCustomError("invalid_datetime", "Invalid datetime, expected ISO 8601")
        return v

    @field_validator("product_image_url")
    @classmethod
    def image_url_is_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            _URL_ADAPTER.validate_python(v)
        except ValueError:
            raise PydanticCustomError("invalid_url", "Invalid url") from None
        return v


class NormalizedReceipt(BaseModel):
    """Typed record produced by the normalizer; the only input of reconciliation."""

    receipt_id: str
    product_id: Optional[str] = None
    receipt_created_timestamp: Optional[datetime] = None
    merchant_name: Optional[str] = None
    product_description: Optional[str] = None
    brand: Optional[str] = None
    # List (usually 1-3 levels), plain string, or whatever a bracketed string decoded to
    product_category: Any = None
    total_price_paid: Optional[float] = None
    product_code: Optional[str] = None
    product_image_url: Optional[str] = None


# ---------------------------------------------------------------------------
# Domain schema used for structured model output


class EnrichmentResult(BaseModel):
    """Product attributes inferred by the language model."""

    model_config = ConfigDict(extra="ignore")

    brand: str = Field(description='Standardized brand name or "unknown"')
    category: List[str] = Field(min_length=1, description="General to specific, up to three levels")
    upc: Optional[str] = Field(default=None, description="12-digit UPC if known")
    size: Optional[str] = None
    color: Optional[str] = None
    material: Optional[str] = None
    model: Optional[str] = None
    weight: Optional[str] = None
    confidence: Confidence

    @classmethod
    def degraded(cls, existing_brand: Optional[str] = None) -> "EnrichmentResult":
        """Placeholder used whenever the model call fails."""
        return cls(
            brand=existing_brand or UNKNOWN,
            category=[UNKNOWN],
            confidence=Confidence.LOW,
        )


# ---------------------------------------------------------------------------
# Persistence and API schemas


class ReceiptRecord(BaseModel):
    """Flat, insert-ready receipt row."""

    model_config = ConfigDict(use_enum_values=True)

    receipt_id: str
    product_id: Optional[str] = None
    receipt_created_timestamp: Optional[datetime] = None
    merchant_name: Optional[str] = None
    canonical_merchant_name: Optional[str] = None
    product_description: Optional[str] = None
    brand: Optional[str] = None
    product_category: Any = None
    total_price_paid: Optional[float] = None
    product_code: Optional[str] = None
    product_image_url: Optional[str] = None
    enriched_brand: Optional[str] = None
    enriched_category: Optional[List[str]] = None
    enriched_upc: Optional[str] = None
    enriched_size: Optional[str] = None
    enriched_color: Optional[str] = None
    enriched_material: Optional[str] = None
    enriched_model: Optional[str] = None
    enriched_weight: Optional[str] = None
    enrichment_confidence: Optional[Confidence] = None


class ReceiptRead(ReceiptRecord):
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReceiptIngestResponse(BaseModel):
    message: str = "Receipt ingested successfully"
    receipt_id: str
    enrichment: Optional[EnrichmentResult] = None


class FieldErrorRead(BaseModel):
    field: str
    message: str
    code: str


class ValidationErrorResponse(BaseModel):
    error: str = "Validation failed"
    message: str
    details: List[FieldErrorRead]
    timestamp: str
