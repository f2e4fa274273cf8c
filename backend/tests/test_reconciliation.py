from __future__ import annotations

import httpx
import pytest

from receipt_enrichment.core.exceptions import InputError
from receipt_enrichment.models.schemas import NormalizedReceipt
from receipt_enrichment.services.enrichment_service import EnrichmentService
from receipt_enrichment.services.reconciliation import (
    ReconciliationEngine,
    category_is_missing,
    needs_enrichment,
)


def _engine(client):
    return ReconciliationEngine(EnrichmentService(client, timeout=1))


def _receipt(**fields):
    fields.setdefault("receipt_id", "R1")
    return NormalizedReceipt(**fields)


@pytest.mark.parametrize("category", [None, [], "", "   "])
def test_category_missing_variants(category):
    assert category_is_missing(category) is True


def test_category_present_variants():
    assert category_is_missing(["Food"]) is False
    assert category_is_missing("Food") is False


def test_needs_enrichment_requires_description():
    assert needs_enrichment(_receipt(), force_enrichment=True) is False
    assert needs_enrichment(_receipt(product_description="  "), force_enrichment=True) is False


def test_needs_enrichment_conditions():
    complete = dict(product_description="Milk", brand="Horizon", product_category=["Dairy"])
    assert needs_enrichment(_receipt(**complete)) is False
    assert needs_enrichment(_receipt(**complete), force_enrichment=True) is True
    assert needs_enrichment(_receipt(**{**complete, "brand": ""})) is True
    assert needs_enrichment(_receipt(**{**complete, "product_category": "  "})) is True


@pytest.mark.asyncio
async def test_complete_receipt_skips_enrichment(fake_client):
    client = fake_client({"brand": "X", "category": ["Y"], "confidence": "high"})
    record, result = await _engine(client).reconcile(
        _receipt(product_description="Milk", brand="horizon organic inc", product_category=["Dairy"])
    )
    assert client.calls == []
    assert result is None
    assert record.brand == "horizon organic inc"
    assert record.enriched_brand == "Horizon Organic"
    assert record.enriched_category is None
    assert record.enrichment_confidence is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "confidence, expected",
    [("medium", "Apple"), ("low", "Apple"), ("high", "Apple Computer")],
)
async def test_brand_precedence_by_confidence(fake_client, confidence, expected):
    client = fake_client({"brand": "Apple Computer", "category": ["Electronics"], "confidence": confidence})
    record, _ = await _engine(client).reconcile(
        _receipt(product_description="MacBook Air", brand="Apple", product_category=["Computers"]),
        force_enrichment=True,
    )
    assert record.brand == expected
    # enriched_brand always reflects the (standardized) model answer when enrichment ran
    assert record.enriched_brand == "Apple"
    assert record.enrichment_confidence == confidence


@pytest.mark.asyncio
@pytest.mark.parametrize("confidence", ["high", "medium", "low"])
async def test_unknown_brand_never_adopted(fake_client, confidence):
    client = fake_client({"brand": "unknown", "category": ["unknown"], "confidence": confidence})
    record, result = await _engine(client).reconcile(_receipt(product_description="Mystery item"))
    assert record.brand is None
    assert record.product_category is None
    # enriched_brand is the standardized model answer; only the final brand rejects the sentinel
    assert record.enriched_brand == "Unknown"
    assert record.enriched_category == ["unknown"]
    assert result is not None


@pytest.mark.asyncio
async def test_category_precedence(fake_client):
    reply = {"brand": "Sony", "category": ["Electronics", "Audio"], "confidence": "medium"}
    record, _ = await _engine(fake_client(reply)).reconcile(
        _receipt(product_description="Headphones", brand="Sony", product_category="Gadgets"),
        force_enrichment=True,
    )
    assert record.product_category == "Gadgets"

    record, _ = await _engine(fake_client(reply)).reconcile(
        _receipt(product_description="Headphones", brand="Sony", product_category=[]),
    )
    assert record.product_category == ["Electronics", "Audio"]


@pytest.mark.asyncio
async def test_detail_fields_come_only_from_enrichment(fake_client):
    reply = {
        "brand": "Levi's",
        "category": ["Apparel", "Pants", "Jeans"],
        "upc": "",
        "size": "32x30",
        "color": "Indigo",
        "material": "Denim",
        "model": "501",
        "weight": None,
        "confidence": "high",
    }
    record, _ = await _engine(fake_client(reply)).reconcile(_receipt(product_description="501 Original Jeans"))
    assert record.enriched_upc is None
    assert record.enriched_size == "32x30"
    assert record.enriched_color == "Indigo"
    assert record.enriched_material == "Denim"
    assert record.enriched_model == "501"
    assert record.enriched_weight is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        httpx.ConnectError("network down"),
        "```json\n{this is not json}\n```",
        {"brand": 42, "category": ["A"], "confidence": "high"},
        {"brand": "Sony", "category": ["A"]},
    ],
)
async def test_enrichment_failure_never_raises(fake_client, reply):
    record, result = await _engine(fake_client(reply)).reconcile(
        _receipt(product_description="Widget", brand="Acme")
    )
    assert record.enrichment_confidence == "low"
    assert record.brand == "Acme"
    assert record.enriched_brand == "Acme"
    assert record.enriched_category == ["unknown"]
    assert record.product_category is None
    assert result.confidence.value == "low"


@pytest.mark.asyncio
async def test_end_to_end_scenario(fake_client):
    client = fake_client({"brand": "Apple", "category": ["Electronics", "Phones"], "confidence": "high"})
    record = await _engine(client).normalize_and_reconcile(
        {"receipt_id": "R1", "product_description": "iPhone 15 Pro", "merchant_name": "Apple Store"},
        force_enrichment=False,
    )
    assert record.receipt_id == "R1"
    assert record.brand == "Apple"
    assert record.product_category == ["Electronics", "Phones"]
    assert record.enriched_brand == "Apple"
    assert record.enrichment_confidence == "high"
    assert record.canonical_merchant_name == "Apple"
    assert client.calls[0]["merchant"] == "Apple Store"


@pytest.mark.asyncio
async def test_normalize_and_reconcile_rejects_bad_input(fake_client):
    client = fake_client({"brand": "X", "category": ["Y"], "confidence": "high"})
    with pytest.raises(InputError):
        await _engine(client).normalize_and_reconcile({"product_description": "No id"})
    assert client.calls == []


@pytest.mark.asyncio
async def test_normalize_and_reconcile_with_result_returns_enrichment(fake_client):
    client = fake_client({"brand": "Sony", "category": ["Electronics", "Audio"], "confidence": "medium"})
    engine = _engine(client)
    record, result = await engine.normalize_and_reconcile_with_result(
        {"RECEIPT_ID": "R9", "product_description": "WH-1000XM5"}
    )
    assert record.receipt_id == "R9"
    assert record.brand == "Sony"
    assert result is not None
    assert result.category == ["Electronics", "Audio"]

    record, result = await engine.normalize_and_reconcile_with_result(
        {"receipt_id": "R10", "product_description": "Milk", "brand": "Horizon", "product_category": "Dairy"}
    )
    assert result is None
    assert record.brand == "Horizon"
    assert len(client.calls) == 1
