"""Run the API with uvicorn on the configured port."""

import uvicorn

from receipt_enrichment.core.config import settings


def main() -> None:
    uvicorn.run("receipt_enrichment.api.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
