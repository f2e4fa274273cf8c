from __future__ import annotations

import asyncio

import httpx
import pytest

from receipt_enrichment.core.config import Settings
from receipt_enrichment.core.exceptions import EnrichmentSchemaError, EnrichmentTransportError
from receipt_enrichment.models.enums import Confidence
from receipt_enrichment.services.enrichment_service import (
    EnrichmentDegraded,
    EnrichmentService,
    EnrichmentSucceeded,
    OpenAIEnrichmentClient,
    extract_json_payload,
    parse_enrichment_response,
)
from receipt_enrichment.utils.prompts import get_enrichment_prompt

VALID = {
    "brand": "Sony",
    "category": ["Electronics", "Audio", "Headphones"],
    "upc": "027242923782",
    "color": "Black",
    "confidence": "high",
}


def test_extract_json_payload_strips_fences():
    assert extract_json_payload('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert extract_json_payload('Sure!\n```\n{"a": 1}\n```\nDone') == '{"a": 1}'
    assert extract_json_payload('{"a": 1}') == '{"a": 1}'


def test_parse_enrichment_response_valid():
    result = parse_enrichment_response('```json\n{"brand": "Sony", "category": ["Audio"], "confidence": "medium"}\n```')
    assert result.brand == "Sony"
    assert result.category == ["Audio"]
    assert result.confidence == Confidence.MEDIUM
    assert result.upc is None


@pytest.mark.parametrize(
    "text",
    [
        "I am not sure what this product is.",
        '{"brand": "Sony", "category": [], "confidence": "high"}',
        '{"brand": "Sony", "category": ["Audio"], "confidence": "certain"}',
        '{"category": ["Audio"], "confidence": "low"}',
        "",
    ],
)
def test_parse_enrichment_response_rejects_bad_payloads(text):
    with pytest.raises(EnrichmentSchemaError):
        parse_enrichment_response(text)


@pytest.mark.asyncio
async def test_enrich_success(fake_client):
    client = fake_client(VALID)
    service = EnrichmentService(client, timeout=1)
    outcome = await service.enrich("WH-1000XM5 headphones", "Best Buy", existing_brand=None, existing_product_code="SKU1")
    assert isinstance(outcome, EnrichmentSucceeded)
    assert outcome.result.brand == "Sony"
    assert outcome.result.color == "Black"
    assert client.calls == [
        {
            "description": "WH-1000XM5 headphones",
            "merchant": "Best Buy",
            "existing_brand": None,
            "existing_product_code": "SKU1",
        }
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply, reason_type",
    [
        (httpx.ConnectError("connection refused"), EnrichmentTransportError),
        (EnrichmentTransportError("boom"), EnrichmentTransportError),
        ("{not json", EnrichmentSchemaError),
        ({"brand": "Sony", "category": "Audio", "confidence": "high"}, EnrichmentSchemaError),
    ],
)
async def test_enrich_failures_degrade(fake_client, reply, reason_type):
    service = EnrichmentService(fake_client(reply), timeout=1)
    outcome = await service.enrich("Some product", "Some store", existing_brand="Acme")
    assert isinstance(outcome, EnrichmentDegraded)
    assert isinstance(outcome.reason, reason_type)
    assert outcome.result.brand == "Acme"
    assert outcome.result.category == ["unknown"]
    assert outcome.result.confidence == Confidence.LOW
    assert outcome.result.upc is None


@pytest.mark.asyncio
async def test_enrich_timeout_degrades():
    class SlowClient:
        async def generate_structured_enrichment(self, *args, **kwargs):
            await asyncio.sleep(5)
            return "{}"

    service = EnrichmentService(SlowClient(), timeout=0.01)
    outcome = await service.enrich("Some product", None)
    assert isinstance(outcome, EnrichmentDegraded)
    assert isinstance(outcome.reason, EnrichmentTransportError)
    assert outcome.result.brand == "unknown"


@pytest.mark.asyncio
async def test_openai_client_without_key_degrades():
    client = OpenAIEnrichmentClient(Settings(OPENAI_API_KEY=None))
    with pytest.raises(EnrichmentTransportError):
        await client.generate_structured_enrichment("Some product", "Store")

    outcome = await EnrichmentService(client, timeout=1).enrich("Some product", "Store")
    assert isinstance(outcome, EnrichmentDegraded)


def test_prompt_includes_context_and_placeholders():
    prompt = get_enrichment_prompt("Nintendo Switch OLED Console", "GameStop", "Nintendo", None)
    assert "Nintendo Switch OLED Console" in prompt
    assert 'Merchant: "GameStop"' in prompt
    assert 'Existing Brand: "Nintendo"' in prompt
    assert 'Existing Product Code: "none"' in prompt
    assert "JSON format" in prompt

    bare = get_enrichment_prompt("Generic Product {x}", None)
    assert 'Existing Brand: "none"' in bare
    assert "Generic Product {x}" in bare
