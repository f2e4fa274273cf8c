"""Enumeration types used throughout the receipt enrichment service.

Enumerations make it easier to constrain the values that can be
stored in the database or passed through the API.
"""

from enum import Enum


class Confidence(str, Enum):
    """Trust tier attached to an enrichment result.

    Only ``HIGH`` allows enriched values to override caller-supplied ones.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
