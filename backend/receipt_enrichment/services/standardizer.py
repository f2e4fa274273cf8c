"""Rule-based brand and merchant name standardization.

Both standardizers first try a small alias table of well-known names and
otherwise fall back to a generic cleanup:

1. strip one trailing ``.com``
2. strip one trailing corporate suffix (``inc``, ``llc``, ``corp``,
   ``corporation``, optionally followed by a dot)
3. collapse whitespace and title-case the result

The two suffix steps run in that order, so ``"amazon inc.com"`` loses
``.com`` and then ``inc`` (giving ``"Amazon"``), while in
``"amazon.com inc"`` only ``inc`` is trailing and ``.com`` survives
(giving ``"Amazon.com"``).

``None`` stays ``None`` and an empty string stays empty: callers use the
difference to tell "field absent" from "field sent blank".
"""

from __future__ import annotations

import re
from typing import Optional

# Exact (post-trim, lowercase) matches only
BRAND_ALIASES: dict[str, str] = {
    "apple": "Apple",
    "apple inc": "Apple",
    "apple inc.": "Apple",
    "apple computer": "Apple",
    "amazon": "Amazon",
    "amazon.com": "Amazon",
    "amazon inc": "Amazon",
    "amazon inc.": "Amazon",
    "amazon basics": "Amazon Basics",
    "amazonbasics": "Amazon Basics",
    "google": "Google",
    "google llc": "Google",
    "google inc": "Google",
    "google inc.": "Google",
    "microsoft": "Microsoft",
    "microsoft corp": "Microsoft",
    "microsoft corp.": "Microsoft",
    "microsoft corporation": "Microsoft",
    "samsung": "Samsung",
    "samsung electronics": "Samsung",
    "sony": "Sony",
    "sony corporation": "Sony",
    "nike": "Nike",
    "nike inc": "Nike",
    "nike inc.": "Nike",
    "hp": "HP",
    "hewlett-packard": "HP",
    "hewlett packard": "HP",
    "lg": "LG",
    "lg electronics": "LG",
    "3m": "3M",
    "procter & gamble": "Procter & Gamble",
    "p&g": "Procter & Gamble",
    "kirkland": "Kirkland Signature",
    "kirkland signature": "Kirkland Signature",
    "great value": "Great Value",
}

# Exact matches first, then substring containment in declared order
MERCHANT_ALIASES: dict[str, str] = {
    "walmart": "Walmart",
    "wal-mart": "Walmart",
    "wal mart": "Walmart",
    "target": "Target",
    "target corp": "Target",
    "target corporation": "Target",
    "amazon": "Amazon",
    "amazon.com": "Amazon",
    "amazon marketplace": "Amazon",
    "amzn": "Amazon",
    "costco": "Costco",
    "costco wholesale": "Costco",
    "best buy": "Best Buy",
    "bestbuy": "Best Buy",
    "home depot": "Home Depot",
    "the home depot": "Home Depot",
    "lowe's": "Lowe's",
    "lowes": "Lowe's",
    "kroger": "Kroger",
    "walgreens": "Walgreens",
    "cvs": "CVS",
    "apple store": "Apple",
    "whole foods": "Whole Foods",
    "trader joe's": "Trader Joe's",
    "trader joes": "Trader Joe's",
    "ikea": "IKEA",
}

_DOT_COM_RE = re.compile(r"\.com$", re.IGNORECASE)
_CORPORATE_SUFFIX_RE = re.compile(r"\b(?:inc|llc|corp|corporation)\.?$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
# Start of a token, or a letter right after a hyphen/ampersand: "coca-cola" -> "Coca-Cola", "at&t" -> "At&T"
_WORD_START_RE = re.compile(r"(^|[-&])(\w)")


def _title_case(name: str) -> str:
    return " ".join(
        _WORD_START_RE.sub(lambda m: m.group(1) + m.group(2).upper(), token.lower())
        for token in name.split(" ")
        if token
    )


def clean_company_name(name: str) -> str:
    """Generic cleanup used when no alias matches."""
    cleaned = name.strip()
    cleaned = _DOT_COM_RE.sub("", cleaned)
    cleaned = _CORPORATE_SUFFIX_RE.sub("", cleaned.rstrip())
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return _title_case(cleaned)


def standardize_brand(name: Optional[str]) -> Optional[str]:
    """Return the canonical spelling of a brand name."""
    if name is None:
        return None
    if name == "":
        return ""
    key = name.strip().lower()
    if key in BRAND_ALIASES:
        return BRAND_ALIASES[key]
    return clean_company_name(name)


def normalize_merchant_name(name: Optional[str]) -> Optional[str]:
    """Return the canonical spelling of a merchant name.

    Unlike brands, merchants often carry store numbers or locations
    ("Walmart Store #1234", "Amazon Fulfillment Center"), so after the
    exact lookup the alias keys are also matched as substrings.
    """
    if name is None:
        return None
    if name == "":
        return ""
    key = _WHITESPACE_RE.sub(" ", name.strip().lower())
    if key in MERCHANT_ALIASES:
        return MERCHANT_ALIASES[key]
    for alias, canonical in MERCHANT_ALIASES.items():
        if alias in key:
            return canonical
    return clean_company_name(name)
