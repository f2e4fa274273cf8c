from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import pytest

# Add backend folder to sys.path so `import receipt_enrichment...` works in tests when running from backend root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))


class FakeEnrichmentClient:
    """Scripted stand-in for the OpenAI client.

    ``reply`` may be a string (returned as-is), a dict (JSON-encoded) or an
    exception instance (raised).  Every call is recorded in ``calls``.
    """

    def __init__(self, reply: Any = None) -> None:
        self.reply = reply
        self.calls: list[dict[str, Optional[str]]] = []

    async def generate_structured_enrichment(
        self,
        description: str,
        merchant: Optional[str],
        existing_brand: Optional[str] = None,
        existing_product_code: Optional[str] = None,
    ) -> str:
        self.calls.append(
            {
                "description": description,
                "merchant": merchant,
                "existing_brand": existing_brand,
                "existing_product_code": existing_product_code,
            }
        )
        if isinstance(self.reply, BaseException):
            raise self.reply
        if isinstance(self.reply, dict):
            return json.dumps(self.reply)
        return self.reply


@pytest.fixture
def fake_client():
    """Factory fixture: ``fake_client({"brand": ...})``."""
    return FakeEnrichmentClient
