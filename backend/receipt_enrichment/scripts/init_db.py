"""Initialize database tables."""

import asyncio

from receipt_enrichment.core.config import settings
from receipt_enrichment.core.database import Database, masked_url


async def main():
    database = Database.from_settings(settings)
    print(f"Initializing database tables at {masked_url(database.url)}...")
    try:
        await database.create_all()
    finally:
        await database.dispose()
    print("Database initialization complete!")

if __name__ == "__main__":
    asyncio.run(main())
