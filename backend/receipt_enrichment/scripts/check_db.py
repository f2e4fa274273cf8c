"""Print a short summary of the receipts table."""

import asyncio

from sqlalchemy import func, select

from receipt_enrichment.core.config import settings
from receipt_enrichment.core.database import Database
from receipt_enrichment.models.tables import Receipt


async def check_db():
    database = Database.from_settings(settings)
    try:
        async with database.session_factory() as session:
            # Count total receipts
            count_result = await session.execute(select(func.count(Receipt.receipt_id)))
            total = count_result.scalar()
            print(f'Total receipts in database: {total}')

            # Get latest receipts
            result = await session.execute(
                select(Receipt).order_by(Receipt.created_at.desc()).limit(5)
            )
            receipts = result.scalars().all()

            if receipts:
                print('\nLatest receipts:')
                for r in receipts:
                    print(f'ID: {r.receipt_id}, Merchant: {r.merchant_name}, Created: {r.created_at}')
                    if r.enrichment_confidence:
                        print(f'  Enriched: brand={r.enriched_brand}, confidence={r.enrichment_confidence}')
            else:
                print('No receipts found in database')
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(check_db())
