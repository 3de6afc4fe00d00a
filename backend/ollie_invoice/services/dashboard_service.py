"""
Dashboard service.
Summarizes money received and outstanding for a business.
"""

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.db.repositories.invoice_repository import InvoiceRepository
from ollie_invoice.db.repositories.payment_repository import PaymentRepository
from ollie_invoice.models.business import Business
from ollie_invoice.models.invoice import InvoiceStatus
from ollie_invoice.schemas.dashboard import DashboardStatsResponse
from ollie_invoice.services.base_service import BaseService
from ollie_invoice.services.financial_calculator import ZERO, balance_due
from ollie_invoice.services.invoice_service import to_invoice_response
from ollie_invoice.services.invoice_state_machine import display_status
from ollie_invoice.utils.time import utcnow

RECENT_PAYMENTS_DAYS = 30
RECENT_INVOICES = 10


class DashboardService(BaseService):
    """Service for dashboard figures."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.invoice_repo = InvoiceRepository(session)
        self.payment_repo = PaymentRepository(session)

    async def get_stats(self, business: Business, now: Optional[datetime] = None) -> DashboardStatsResponse:
        """
        Compute dashboard stats.

        Returns:
            Payments received in the last 30 days, the open balance not yet
            due (drafts included), the overdue balance and the latest invoices
        """
        now = now or utcnow()
        total_paid = await self.payment_repo.sum_for_business_since(
            business.id, now - timedelta(days=RECENT_PAYMENTS_DAYS)
        )

        invoices = await self.invoice_repo.list_by_business(business.id, is_recurring=False, limit=None)
        total_unpaid = ZERO
        total_overdue = ZERO
        for invoice in invoices:
            status = display_status(invoice.status, invoice.due_date, now)
            if status == InvoiceStatus.PAID:
                continue
            remaining = balance_due(invoice.total, invoice.amount_paid)
            if status == InvoiceStatus.OVERDUE:
                total_overdue += remaining
            else:
                total_unpaid += remaining

        return DashboardStatsResponse(
            total_paid=total_paid,
            total_unpaid=total_unpaid,
            total_overdue=total_overdue,
            recent_invoices=[to_invoice_response(invoice, now) for invoice in invoices[:RECENT_INVOICES]],
        )
