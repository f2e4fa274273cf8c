import datetime as dt
import json

import pytest

from receipt_enrichment.core.exceptions import InputError
from receipt_enrichment.services.normalizer import (
    canonicalize_keys,
    normalize_receipt,
    parse_price,
    parse_product_category,
)


def _full_receipt(key_case=str.lower):
    body = {
        "receipt_id": "R-100",
        "product_id": "P-1",
        "receipt_created_timestamp": "2024-03-01T09:15:00Z",
        "merchant_name": "Target",
        "product_description": "Wireless earbuds",
        "brand": "Sony",
        "product_category": '["Electronics", "Audio"]',
        "total_price_paid": "49.99",
        "product_code": "SKU-9",
        "product_image_url": "https://example.com/img.png",
    }
    return {key_case(k): v for k, v in body.items()}


def test_canonicalize_keys_lowercases_everything():
    assert canonicalize_keys({"RECEIPT_ID": "a", "Brand": "b"}) == {"receipt_id": "a", "brand": "b"}


def test_canonicalize_keys_lowercase_variant_wins():
    assert canonicalize_keys({"RECEIPT_ID": "upper", "receipt_id": "lower"}) == {"receipt_id": "lower"}
    assert canonicalize_keys({"receipt_id": "lower", "RECEIPT_ID": "upper"}) == {"receipt_id": "lower"}


def test_canonicalize_keys_first_non_canonical_variant_wins():
    assert canonicalize_keys({"RECEIPT_ID": "first", "Receipt_Id": "second"}) == {"receipt_id": "first"}


def test_normalization_is_a_fixed_point():
    once = normalize_receipt(_full_receipt())
    twice = normalize_receipt(once.model_dump(mode="json"))
    assert twice == once


@pytest.mark.parametrize("key_case", [str.upper, str.title, str.lower])
def test_normalization_ignores_key_case(key_case):
    assert normalize_receipt(_full_receipt(key_case)) == normalize_receipt(_full_receipt())


def test_normalize_receipt_parses_loose_fields():
    receipt = normalize_receipt(_full_receipt())
    assert receipt.product_category == ["Electronics", "Audio"]
    assert receipt.total_price_paid == pytest.approx(49.99)
    assert receipt.receipt_created_timestamp == dt.datetime(2024, 3, 1, 9, 15, tzinfo=dt.timezone.utc)


def test_parse_product_category_round_trip():
    assert parse_product_category(json.dumps(["A", "B", "C"])) == ["A", "B", "C"]


def test_parse_product_category_malformed_is_returned_unchanged():
    assert parse_product_category('["A","B"') == '["A","B"'


def test_parse_product_category_passthrough_and_copy():
    assert parse_product_category(None) is None
    assert parse_product_category("Electronics") == "Electronics"
    original = ["A", "B"]
    copied = parse_product_category(original)
    copied.append("C")
    assert original == ["A", "B"]


def test_parse_price_coercion():
    assert parse_price("99.99") == parse_price(99.99) == 99.99
    assert parse_price("not-a-number") is None
    assert parse_price("nan") is None
    assert parse_price(None) is None
    assert parse_price(0) == 0.0
    # Integers beyond float range cannot be converted
    assert parse_price(10**400) is None
    assert parse_price("1e400") is None


def test_missing_price_stays_none():
    receipt = normalize_receipt({"receipt_id": "R1"})
    assert receipt.total_price_paid is None


def test_oversized_integer_price_becomes_none():
    receipt = normalize_receipt({"receipt_id": "R1", "total_price_paid": 10**400})
    assert receipt.total_price_paid is None


def test_integer_price_is_coerced_to_float():
    receipt = normalize_receipt({"receipt_id": "R1", "TOTAL_PRICE_PAID": 12})
    assert receipt.total_price_paid == 12.0
    assert isinstance(receipt.total_price_paid, float)


def test_normalize_receipt_reports_every_invalid_field():
    with pytest.raises(InputError) as excinfo:
        normalize_receipt(
            {
                "product_image_url": "not a url",
                "receipt_created_timestamp": "yesterday",
            }
        )
    details = {d.field: d for d in excinfo.value.details}
    assert set(details) == {"receipt_id", "product_image_url", "receipt_created_timestamp"}
    assert details["receipt_id"].code == "missing"
    assert details["receipt_id"].message == "Either receipt_id or RECEIPT_ID must be provided"
    assert details["product_image_url"].code == "invalid_url"
    assert details["receipt_created_timestamp"].code == "invalid_datetime"


def test_blank_receipt_id_is_rejected():
    with pytest.raises(InputError) as excinfo:
        normalize_receipt({"RECEIPT_ID": "   "})
    assert [d.field for d in excinfo.value.details] == ["receipt_id"]


def test_non_object_body_is_rejected():
    with pytest.raises(InputError) as excinfo:
        normalize_receipt(["R1"])
    assert excinfo.value.details[0].code == "invalid_type"
