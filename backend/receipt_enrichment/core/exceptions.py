"""Exception types shared by the ingestion pipeline and the API layer.

``InputError`` and the persistence errors are surfaced to HTTP callers by
the handlers in ``receipt_enrichment.api.error_handlers``.  The enrichment
errors never leave the enrichment service: they are recorded as the reason
of a degraded enrichment outcome.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One invalid input field: dotted path, human message, machine code."""

    field: str
    message: str
    code: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "code": self.code}


class ReceiptServiceError(Exception):
    """Base class for errors raised by the receipt enrichment service."""


class InputError(ReceiptServiceError):
    """The request body is malformed; carries every invalid field at once."""

    def __init__(self, details: list[FieldError], message: str = "Request body contains invalid data") -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details)


class EnrichmentError(ReceiptServiceError):
    """Base class for failures of the enrichment call."""


class EnrichmentTransportError(EnrichmentError):
    """The model could not be reached, timed out or refused the request."""


class EnrichmentSchemaError(EnrichmentError):
    """The model answered with text that is not a valid enrichment payload."""


class PersistenceConflictError(ReceiptServiceError):
    """A receipt with the same external identifier already exists."""

    def __init__(self, receipt_id: str) -> None:
        super().__init__(f"A receipt with receipt_id '{receipt_id}' already exists")
        self.receipt_id = receipt_id


class PersistenceUnavailableError(ReceiptServiceError):
    """The relational store could not be reached or failed the statement."""
