"""Top-level application package for the receipt enrichment API.

This package ingests retail receipt line items over HTTP, normalizes
their loosely typed fields, fills in missing brand and category data
with a language model call and stores the merged record in a relational
database keyed by the caller's receipt identifier.

To run the API locally you can execute:

```bash
uvicorn receipt_enrichment.api.main:app --reload --port 7646
```

or simply ``python -m receipt_enrichment``.  Configuration values come
from environment variables or a ``.env`` file at the project root; set
``DATABASE_URL`` (or ``DB_DEV_FALLBACK_SQLITE=true`` for a local SQLite
file) and ``OPENAI_API_KEY``.
"""

__all__: list[str] = []
