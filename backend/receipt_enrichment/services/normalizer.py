"""Field normalization for incoming receipt payloads.

Callers send the same logical field under different spellings
(``RECEIPT_ID``, ``Receipt_Id``, ``receipt_id``).  Everything downstream
works on one canonical lowercase key, so the first step of every request
is an explicit pass that:

1. lower-cases every key (``canonicalize_keys``),
2. validates the canonical mapping against ``ReceiptInput`` and collects
   *all* invalid fields into a single ``InputError``,
3. parses the loosely typed fields (category hierarchy, price, timestamp)
   into a typed ``NormalizedReceipt``.

Key collisions are resolved deterministically: a key that is already
lowercase always wins; otherwise the first variant seen wins.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping

from pydantic import ValidationError

from receipt_enrichment.core.exceptions import FieldError, InputError
from receipt_enrichment.models.schemas import NormalizedReceipt, ReceiptInput
from receipt_enrichment.utils.helpers import parse_iso_datetime

logger = logging.getLogger(__name__)

_REQUIRED_MESSAGES = {
    "receipt_id": "Either receipt_id or RECEIPT_ID must be provided",
}


def canonicalize_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``raw`` with every key lower-cased.

    When several keys collapse onto the same canonical key, the one that is
    already lowercase wins; among the remaining variants the first seen wins.
    """
    canonical: dict[str, Any] = {}
    exact: set[str] = set()
    for key, value in raw.items():
        lowered = str(key).lower()
        if key == lowered:
            if lowered in canonical and lowered not in exact:
                logger.debug("Key %r overrides case variant for %r", key, lowered)
            canonical[lowered] = value
            exact.add(lowered)
        elif lowered not in canonical:
            canonical[lowered] = value
        else:
            logger.debug("Ignoring duplicate case variant %r for %r", key, lowered)
    return canonical


def parse_product_category(value: Any) -> Any:
    """Parse the product category hierarchy.

    * a string starting with ``[`` (after trimming) is decoded as JSON; if
      decoding fails the original string is returned unchanged
    * a list or tuple comes back as a new list, never the caller's object
    * ``None`` and any other string pass through unchanged
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str) and value.strip().startswith("["):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def parse_price(value: Any) -> float | None:
    """Coerce a native or string price to ``float``; unparseable values give ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(price):
        return None
    return price


def _field_errors(exc: ValidationError) -> list[FieldError]:
    errors: list[FieldError] = []
    seen: set[str] = set()
    for err in exc.errors():
        loc = err.get("loc") or ()
        # Union members report nested locations such as ("product_category", "list[str]", 0)
        field = str(loc[0]) if loc else ""
        if field in seen:
            continue
        seen.add(field)
        code = err.get("type", "invalid")
        message = err.get("msg", "Invalid value")
        if code == "missing":
            message = _REQUIRED_MESSAGES.get(field, message)
        errors.append(FieldError(field=field, message=message, code=code))
    return errors


def normalize_receipt(raw: Any) -> NormalizedReceipt:
    """Turn an untrusted request body into a typed ``NormalizedReceipt``.

    Raises ``InputError`` listing every invalid field.
    """
    if not isinstance(raw, Mapping):
        raise InputError([FieldError(field="", message="Expected a JSON object", code="invalid_type")])

    canonical = canonicalize_keys(raw)
    try:
        validated = ReceiptInput.model_validate(canonical)
    except ValidationError as exc:
        details = _field_errors(exc)
        logger.info("Rejected receipt payload: %s", ", ".join(d.field for d in details))
        raise InputError(details) from exc

    return NormalizedReceipt(
        receipt_id=validated.receipt_id,
        product_id=validated.product_id,
        receipt_created_timestamp=parse_iso_datetime(validated.receipt_created_timestamp),
        merchant_name=validated.merchant_name,
        product_description=validated.product_description,
        brand=validated.brand,
        product_category=parse_product_category(validated.product_category),
        total_price_paid=parse_price(validated.total_price_paid),
        product_code=validated.product_code,
        product_image_url=validated.product_image_url,
    )
