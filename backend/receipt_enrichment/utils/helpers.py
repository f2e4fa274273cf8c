"""Miscellaneous helper functions."""

from __future__ import annotations

import datetime as dt
from typing import Optional


def parse_iso_datetime(value: str | None) -> Optional[dt.datetime]:
    """Parse an ISO8601 datetime string into a :class:`datetime` object.

    Some data sources provide timestamps that end with a lowercase ``z``
    instead of the canonical ``Z``; both are accepted as the UTC designator.
    Returns ``None`` if the value cannot be parsed.
    """
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        if value[-1:] in ("z", "Z"):
            value = value[:-1] + "+00:00"
        return dt.datetime.fromisoformat(value)
    except ValueError:
        return None


def utc_now_iso() -> str:
    """Current UTC time as an ISO8601 string with a ``Z`` suffix."""
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")
