"""
Invoice repository for database operations.
"""

from datetime import datetime
from typing import Iterable, Optional, List
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from sqlalchemy.orm import selectinload

from ollie_invoice.db.repositories.base_repository import BaseRepository
from ollie_invoice.models.invoice import Invoice, InvoiceStatus


class InvoiceRepository(BaseRepository[Invoice]):
    """Repository for invoice operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Invoice, session)

    def _base_query(self):
        """Base query with eager loading of relationships."""
        return select(Invoice).options(
            selectinload(Invoice.line_items),
            selectinload(Invoice.payments),
            selectinload(Invoice.client),
            selectinload(Invoice.business),
        )

    async def get(self, id: UUID) -> Optional[Invoice]:
        """Get invoice by ID with relationships loaded."""
        result = await self.session.execute(self._base_query().where(Invoice.id == id))
        return result.scalar_one_or_none()

    async def get_for_business(self, invoice_id: UUID, business_id: UUID) -> Optional[Invoice]:
        """Get an invoice only if it belongs to the business."""
        query = self._base_query().where(
            Invoice.id == invoice_id,
            Invoice.business_id == business_id,
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_share_token(self, share_token: str) -> Optional[Invoice]:
        result = await self.session.execute(
            self._base_query().where(Invoice.share_token == share_token)
        )
        return result.scalar_one_or_none()

    def _filtered(
        self,
        query,
        business_id: UUID,
        statuses: Optional[Iterable[InvoiceStatus]] = None,
        is_recurring: Optional[bool] = None,
        due_before: Optional[datetime] = None,
    ):
        query = query.where(Invoice.business_id == business_id)
        if statuses:
            query = query.where(Invoice.status.in_(list(statuses)))
        if is_recurring is not None:
            query = query.where(Invoice.is_recurring == is_recurring)
        if due_before is not None:
            query = query.where(Invoice.due_date < due_before)
        return query

    async def list_by_business(
        self,
        business_id: UUID,
        skip: int = 0,
        limit: Optional[int] = 100,
        statuses: Optional[Iterable[InvoiceStatus]] = None,
        is_recurring: Optional[bool] = None,
        due_before: Optional[datetime] = None,
    ) -> List[Invoice]:
        """List a business's invoices, newest first."""
        query = self._filtered(self._base_query(), business_id, statuses, is_recurring, due_before)
        query = query.order_by(Invoice.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_business(
        self,
        business_id: UUID,
        statuses: Optional[Iterable[InvoiceStatus]] = None,
        is_recurring: Optional[bool] = None,
        due_before: Optional[datetime] = None,
    ) -> int:
        """Count invoices matching the same filters as list_by_business."""
        query = self._filtered(select(func.count(Invoice.id)), business_id, statuses, is_recurring, due_before)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_sent_between(self, business_id: UUID, start: datetime, end: datetime) -> int:
        """Count invoices whose send happened in [start, end)."""
        result = await self.session.execute(
            select(func.count(Invoice.id)).where(
                Invoice.business_id == business_id,
                Invoice.sent_at >= start,
                Invoice.sent_at < end,
            )
        )
        return result.scalar_one()

    async def mark_sent_if_draft(self, invoice_id: UUID, sent_at: datetime) -> bool:
        """
        Move a draft to sent in one conditional statement.

        Returns:
            False if the invoice was no longer a draft
        """
        result = await self.session.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id, Invoice.status == InvoiceStatus.DRAFT)
            .values(status=InvoiceStatus.SENT, sent_at=sent_at, updated_at=sent_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount == 1

    async def list_due_templates(self, now: datetime) -> List[Invoice]:
        """Recurring templates whose next run is at or before ``now``."""
        query = (
            self._base_query()
            .where(
                Invoice.is_recurring == True,
                Invoice.next_recurring_date.is_not(None),
                Invoice.next_recurring_date <= now,
            )
            .order_by(Invoice.next_recurring_date, Invoice.id)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_upcoming_templates(self, limit: int = 20) -> List[Invoice]:
        """Recurring templates ordered by their next run."""
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.is_recurring == True, Invoice.next_recurring_date.is_not(None))
            .order_by(Invoice.next_recurring_date)
            .limit(limit)
        )
        return list(result.scalars().all())
