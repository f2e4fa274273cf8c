"""Product enrichment through a language model.

The service asks an OpenAI chat model for the brand, category hierarchy
and a handful of product details of a single receipt line.  The model is
an unreliable collaborator: it may be unreachable, slow, or answer with
text that is not the JSON we asked for.  None of that is allowed to fail
ingestion, so ``EnrichmentService.enrich`` never raises.  It returns an
explicit outcome instead:

* ``EnrichmentSucceeded(result)`` when the model produced a valid payload
* ``EnrichmentDegraded(reason, result)`` otherwise, where ``result`` is the
  low-confidence placeholder from ``EnrichmentResult.degraded``

The transport is hidden behind the ``EnrichmentClient`` protocol so tests
(and alternative providers) can plug in their own implementation.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from receipt_enrichment.core.config import Settings, settings as default_settings
from receipt_enrichment.core.exceptions import (
    EnrichmentError,
    EnrichmentSchemaError,
    EnrichmentTransportError,
)
from receipt_enrichment.core.observability import sentry_breadcrumb
from receipt_enrichment.models.schemas import EnrichmentResult
from receipt_enrichment.utils.prompts import get_enrichment_prompt

logger = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


class EnrichmentClient(Protocol):
    """Anything that can turn product context into the model's raw text answer."""

    async def generate_structured_enrichment(
        self,
        description: str,
        merchant: Optional[str],
        existing_brand: Optional[str] = None,
        existing_product_code: Optional[str] = None,
    ) -> str:
        ...


class OpenAIEnrichmentClient:
    """``EnrichmentClient`` backed by the OpenAI Chat Completions API."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or default_settings
        self.model: str = self.settings.ENRICHMENT_MODEL
        self.temperature: float = self.settings.ENRICHMENT_TEMPERATURE
        self.max_tokens: int = self.settings.ENRICHMENT_MAX_TOKENS
        self._client = None

    def _get_client(self):
        # AsyncOpenAI refuses to construct without a key, so defer until first use
        if self._client is None:
            api_key = self.settings.OPENAI_API_KEY
            if not api_key:
                raise EnrichmentTransportError(
                    "OPENAI_API_KEY is not configured; set it in the environment or .env file"
                )
            self._client = AsyncOpenAI(
                api_key=api_key,
                timeout=self.settings.ENRICHMENT_TIMEOUT_SECONDS,
            )
        return self._client

    async def generate_structured_enrichment(
        self,
        description: str,
        merchant: Optional[str],
        existing_brand: Optional[str] = None,
        existing_product_code: Optional[str] = None,
    ) -> str:
        client = self._get_client()
        prompt = get_enrichment_prompt(description, merchant, existing_brand, existing_product_code)
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as exc:
            raise EnrichmentTransportError(f"OpenAI request failed: {exc}") from exc
        if not response.choices:
            raise EnrichmentSchemaError("OpenAI returned no choices")
        return response.choices[0].message.content or ""


def extract_json_payload(text: str) -> str:
    """Return the JSON object inside a markdown code fence, or ``text`` itself."""
    match = _FENCED_JSON_RE.search(text)
    if match:
        return match.group(1)
    return text


def parse_enrichment_response(text: str) -> EnrichmentResult:
    """Decode and validate the model's answer.

    Raises ``EnrichmentSchemaError`` if the answer is not JSON or does not
    match ``EnrichmentResult``.
    """
    candidate = extract_json_payload(text or "")
    try:
        data = json.loads(candidate)
    except ValueError as exc:
        raise EnrichmentSchemaError(f"Model response is not valid JSON: {exc}") from exc
    try:
        return EnrichmentResult.model_validate(data)
    except ValidationError as exc:
        raise EnrichmentSchemaError(f"Model response does not match schema: {exc.error_count()} error(s)") from exc


@dataclass(frozen=True)
class EnrichmentSucceeded:
    result: EnrichmentResult


@dataclass(frozen=True)
class EnrichmentDegraded:
    """The model call failed; ``result`` is the low-confidence placeholder."""

    reason: EnrichmentError
    result: EnrichmentResult


EnrichmentOutcome = Union[EnrichmentSucceeded, EnrichmentDegraded]


class EnrichmentService:
    """Bounded, never-raising wrapper around an ``EnrichmentClient``."""

    def __init__(self, client: EnrichmentClient, timeout: Optional[float] = None) -> None:
        self.client = client
        self.timeout = timeout if timeout is not None else default_settings.ENRICHMENT_TIMEOUT_SECONDS

    async def enrich(
        self,
        description: str,
        merchant: Optional[str],
        existing_brand: Optional[str] = None,
        existing_product_code: Optional[str] = None,
    ) -> EnrichmentOutcome:
        try:
            text = await asyncio.wait_for(
                self.client.generate_structured_enrichment(
                    description,
                    merchant,
                    existing_brand=existing_brand,
                    existing_product_code=existing_product_code,
                ),
                timeout=self.timeout,
            )
            result = parse_enrichment_response(text)
        except asyncio.TimeoutError:
            return self._degrade(
                EnrichmentTransportError(f"Enrichment timed out after {self.timeout:g}s"),
                existing_brand,
            )
        except EnrichmentError as exc:
            return self._degrade(exc, existing_brand)
        except Exception as exc:
            # Any other client failure counts as transport
            return self._degrade(EnrichmentTransportError(str(exc) or type(exc).__name__), existing_brand)

        logger.info(
            "Enrichment succeeded brand=%s confidence=%s levels=%d",
            result.brand,
            result.confidence.value,
            len(result.category),
        )
        return EnrichmentSucceeded(result)

    def _degrade(self, reason: EnrichmentError, existing_brand: Optional[str]) -> EnrichmentDegraded:
        logger.warning("Enrichment degraded (%s): %s", type(reason).__name__, reason)
        sentry_breadcrumb(
            category="enrichment",
            message="enrichment degraded",
            level="warning",
            data={"reason": type(reason).__name__},
        )
        return EnrichmentDegraded(reason=reason, result=EnrichmentResult.degraded(existing_brand))
