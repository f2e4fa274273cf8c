"""Probe a running API's ``/health`` endpoint.

Usage: python -m receipt_enrichment.scripts.healthcheck [--port 7646] [--host localhost]

Exits 0 when the service reports healthy, 1 otherwise.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

import httpx

from receipt_enrichment.core.config import settings


def check_health(url: str, client: Optional[httpx.Client] = None, timeout: float = 10.0) -> int:
    owns_client = client is None
    client = client or httpx.Client(timeout=timeout)
    print(f"Health checking API at {url}...")
    try:
        response = client.get(url, headers={"Accept": "application/json"})
    except httpx.HTTPError as exc:
        print(f"Health check failed - could not connect to {url}")
        print(f"   Error: {exc}")
        print("   Make sure the server is running with: python -m receipt_enrichment")
        return 1
    finally:
        if owns_client:
            client.close()

    print(f"HTTP Status: {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(f"Response Body: {response.text}")

    if response.is_success:
        print("Health check passed! API is healthy.")
        return 0
    print(f"Health check failed with HTTP {response.status_code}")
    return 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=settings.PORT)
    args = parser.parse_args(argv)
    return check_health(f"http://{args.host}:{args.port}/health")


if __name__ == "__main__":
    sys.exit(main())
