"""SQLAlchemy ORM models for the receipt enrichment service.

The ``receipts`` table stores one row per external receipt identifier.
``receipt_id`` is the primary key so the database itself rejects a second
insert with the same identifier.  JSON columns hold the category
hierarchy, which callers may send either as a list or as a plain string.

If you extend or modify these models remember to recreate the tables
(``Database.create_all`` runs on startup) or migrate existing databases.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    JSON,
    String,
    Text,
    func,
)

from receipt_enrichment.core.database import Base


class Receipt(Base):
    """Ingested receipt line item with its enrichment results."""

    __tablename__ = "receipts"

    receipt_id = Column(String, primary_key=True)
    product_id = Column(String, nullable=True)
    receipt_created_timestamp = Column(DateTime(timezone=True), nullable=True)
    merchant_name = Column(String, nullable=True)
    canonical_merchant_name = Column(String, nullable=True)
    product_description = Column(Text, nullable=True)
    brand = Column(String, nullable=True)
    product_category = Column(JSON, nullable=True)  # list or string, up to three levels
    total_price_paid = Column(Float, nullable=True)
    product_code = Column(String, nullable=True)
    product_image_url = Column(Text, nullable=True)

    # Enrichment fields
    enriched_brand = Column(String, nullable=True)
    enriched_category = Column(JSON, nullable=True)
    enriched_upc = Column(String, nullable=True)
    enriched_size = Column(String, nullable=True)
    enriched_color = Column(String, nullable=True)
    enriched_material = Column(String, nullable=True)
    enriched_model = Column(String, nullable=True)
    enriched_weight = Column(String, nullable=True)
    enrichment_confidence = Column(String, nullable=True)  # high | medium | low

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
