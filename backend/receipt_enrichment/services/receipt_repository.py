"""Persistence gateway for ingested receipts.

Inserts are plain ``INSERT`` statements, never read-modify-write: the
primary key on ``receipts.receipt_id`` is what guarantees that, of several
concurrent requests for one identifier, exactly one succeeds.  Driver errors
are translated into the service's own exception types so the API layer
does not need to know about SQLAlchemy.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import insert, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from receipt_enrichment.core.exceptions import PersistenceConflictError, PersistenceUnavailableError
from receipt_enrichment.models.schemas import ReceiptRecord
from receipt_enrichment.models.tables import Receipt

logger = logging.getLogger(__name__)


class ReceiptRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, record: ReceiptRecord) -> Receipt:
        """Insert ``record`` and return the stored row.

        Raises ``PersistenceConflictError`` if the identifier already exists
        and ``PersistenceUnavailableError`` for any other database failure.
        """
        values = record.model_dump()
        try:
            await self.session.execute(insert(Receipt).values(**values))
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info("Duplicate receipt_id=%s rejected", record.receipt_id)
            raise PersistenceConflictError(record.receipt_id) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Failed to persist receipt_id=%s: %s", record.receipt_id, exc)
            raise PersistenceUnavailableError("Database is unavailable") from exc

        stored = await self.get(record.receipt_id)
        if stored is None:
            raise PersistenceUnavailableError(f"Receipt {record.receipt_id} vanished after insert")
        logger.info("Persisted receipt_id=%s", record.receipt_id)
        return stored

    async def get(self, receipt_id: str) -> Optional[Receipt]:
        try:
            result = await self.session.execute(select(Receipt).where(Receipt.receipt_id == receipt_id))
        except SQLAlchemyError as exc:
            logger.error("Failed to read receipt_id=%s: %s", receipt_id, exc)
            raise PersistenceUnavailableError("Database is unavailable") from exc
        return result.scalar_one_or_none()

    async def ping(self) -> bool:
        try:
            result = await self.session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return result.scalar() == 1
