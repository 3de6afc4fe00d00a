"""
Business repository for database operations.
"""

from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func

from ollie_invoice.db.repositories.base_repository import BaseRepository
from ollie_invoice.models.business import Business
from ollie_invoice.models.invoice import Invoice


class BusinessRepository(BaseRepository[Business]):
    """Repository for business operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Business, session)

    async def next_invoice_number(self, business_id: UUID) -> str:
        """
        Advance the business's invoice sequence and return it zero-padded.

        The sequence starts from the number of existing invoices and never
        moves backwards, so numbers are not reused after deletions.
        """
        existing = (
            select(func.count(Invoice.id))
            .where(Invoice.business_id == business_id)
            .scalar_subquery()
        )
        await self.session.execute(
            update(Business)
            .where(Business.id == business_id)
            .values(invoice_sequence=func.coalesce(Business.invoice_sequence, existing) + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            select(Business.invoice_sequence).where(Business.id == business_id)
        )
        return str(result.scalar_one()).zfill(4)
