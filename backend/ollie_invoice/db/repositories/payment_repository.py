"""
Payment repository for database operations.
"""

from datetime import datetime
from decimal import Decimal
from typing import List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from ollie_invoice.db.repositories.base_repository import BaseRepository
from ollie_invoice.models.invoice import Invoice, Payment


class PaymentRepository(BaseRepository[Payment]):
    """Repository for the append-only payment ledger."""

    def __init__(self, session: AsyncSession):
        super().__init__(Payment, session)

    async def list_by_invoice(self, invoice_id: UUID) -> List[Payment]:
        """List payments for an invoice, newest first."""
        result = await self.session.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id)
            .order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())

    async def sum_by_invoice(self, invoice_id: UUID) -> Decimal:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.invoice_id == invoice_id)
        )
        return Decimal(str(result.scalar_one()))

    async def reference_exists(self, invoice_id: UUID, reference: str) -> bool:
        result = await self.session.execute(
            select(func.count(Payment.id)).where(
                Payment.invoice_id == invoice_id,
                Payment.reference == reference,
            )
        )
        return result.scalar_one() > 0

    async def sum_for_business_since(self, business_id: UUID, since: datetime) -> Decimal:
        """Total received across a business's invoices since ``since``."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0))
            .join(Invoice, Invoice.id == Payment.invoice_id)
            .where(Invoice.business_id == business_id, Payment.created_at >= since)
        )
        return Decimal(str(result.scalar_one()))
