"""
Recurring invoice generation.

Each due template is cloned into a new sent invoice inside its own
transaction, so one failing template never blocks the others.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.core.integrations.observability import record_exception
from ollie_invoice.db.repositories.business_repository import BusinessRepository
from ollie_invoice.db.repositories.invoice_repository import InvoiceRepository
from ollie_invoice.db.repositories.tax_type_repository import TaxTypeRepository
from ollie_invoice.models.invoice import Invoice, InvoiceStatus, generate_share_token
from ollie_invoice.schemas.recurring import RecurringErrorResponse, RecurringRunResponse
from ollie_invoice.services.financial_calculator import ZERO, calculate_totals
from ollie_invoice.services.invoice_service import apply_totals, build_line_items, default_payment_terms
from ollie_invoice.services.invoice_state_machine import ensure_sendable
from ollie_invoice.services.notification_service import NotificationService
from ollie_invoice.services.recurrence import advance_past
from ollie_invoice.services.usage_service import UsageService
from ollie_invoice.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass
class RecurringError:
    template_id: UUID
    message: str
    invoice_number: Optional[str] = None


@dataclass
class RecurringRunResult:
    """Outcome of one pass: clones created, emails delivered, problems hit."""
    started_at: datetime
    processed: int = 0
    sent: int = 0
    errors: List[RecurringError] = field(default_factory=list)
    finished_at: Optional[datetime] = None

    def to_response(self) -> RecurringRunResponse:
        return RecurringRunResponse(
            processed=self.processed,
            sent=self.sent,
            errors=[
                RecurringErrorResponse(
                    template_id=error.template_id,
                    invoice_number=error.invoice_number,
                    message=error.message,
                )
                for error in self.errors
            ],
            started_at=self.started_at,
            finished_at=self.finished_at or self.started_at,
        )


class RecurringInvoiceService:
    """Turns due recurring templates into sent invoices."""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        notification_service: NotificationService,
    ):
        self.session_factory = session_factory
        self.notification_service = notification_service

    async def process_due(self, now: Optional[datetime] = None) -> RecurringRunResult:
        """
        Generate invoices for every template due at ``now``.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            RecurringRunResult with per-template errors collected
        """
        now = now or utcnow()
        result = RecurringRunResult(started_at=now)

        async with self.session_factory() as session:
            templates = await InvoiceRepository(session).list_due_templates(now)
            due = [(template.id, template.invoice_number) for template in templates]

        logger.info("Recurring run started", extra={"due_templates": len(due), "now": now.isoformat()})

        for template_id, invoice_number in due:
            try:
                await self.process_template(template_id, now, result)
            except Exception as e:
                logger.exception(
                    "Recurring template failed",
                    extra={"template_id": str(template_id), "invoice_number": invoice_number},
                )
                record_exception(e, template_id=str(template_id), invoice_number=invoice_number)
                result.errors.append(RecurringError(
                    template_id=template_id,
                    invoice_number=invoice_number,
                    message=f"Error processing template {invoice_number}: {e}",
                ))

        result.finished_at = utcnow()
        logger.info(
            "Recurring run finished",
            extra={"processed": result.processed, "sent": result.sent, "errors": len(result.errors)},
        )
        return result

    async def process_template(self, template_id: UUID, now: datetime, result: RecurringRunResult) -> None:
        async with self.session_factory() as session:
            try:
                template = await InvoiceRepository(session).get(template_id)
                if (
                    template is None
                    or not template.is_recurring
                    or template.next_recurring_date is None
                    or template.next_recurring_date > now
                ):
                    # Handled by an overlapping run or edited since the query
                    return

                invoice = await self.generate_invoice(session, template, now)
                self.advance_schedule(template, now)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

            result.processed += 1
            logger.info(
                "Recurring invoice generated",
                extra={
                    "template_id": str(template.id),
                    "invoice_id": str(invoice.id),
                    "invoice_number": invoice.invoice_number,
                    "next_recurring_date": template.next_recurring_date.isoformat(),
                },
            )

            if invoice.client is None or not invoice.client.email:
                return
            delivery = await self.notification_service.send_invoice_created(
                invoice, invoice.client, template.business
            )
            if delivery.success:
                result.sent += 1
            else:
                result.errors.append(RecurringError(
                    template_id=template.id,
                    invoice_number=invoice.invoice_number,
                    message=f"Failed to send invoice #{invoice.invoice_number}: {delivery.error}",
                ))

    async def generate_invoice(self, session: AsyncSession, template: Invoice, now: datetime) -> Invoice:
        """Clone a template into a new sent invoice, recomputing totals from the current tax catalog."""
        business = template.business
        catalog = await TaxTypeRepository(session).list_by_business(business.id)
        totals = calculate_totals(
            template.line_items,
            catalog,
            template.shipping,
            template.discount_type,
            template.discount_value,
        )
        terms = default_payment_terms(business)
        ensure_sendable(template.client, template.line_items, totals.total)

        # Usage is counted before the clone exists so a fresh period row is not seeded with it
        await UsageService(session).record_send(business, now)

        invoice = Invoice(
            business_id=business.id,
            client=template.client,
            invoice_number=await BusinessRepository(session).next_invoice_number(business.id),
            status=InvoiceStatus.SENT,
            issue_date=now,
            due_date=now + timedelta(days=terms),
            notes=template.notes,
            payment_method=template.payment_method,
            discount_type=template.discount_type,
            discount_value=template.discount_value,
            amount_paid=ZERO,
            share_token=generate_share_token(),
            sent_at=now,
            is_recurring=False,
            recurring_every=1,
            template_id=template.id,
            line_items=build_line_items(template.line_items, totals),
            payments=[],
            created_at=now,
            updated_at=now,
        )
        apply_totals(invoice, totals)
        session.add(invoice)
        await session.flush()
        return invoice

    @staticmethod
    def advance_schedule(template: Invoice, now: datetime) -> None:
        """Record the run and move the next date past ``now``, skipping missed periods."""
        template.last_recurring_date = now
        template.next_recurring_date = advance_past(
            template.recurring_frequency,
            template.recurring_every,
            template.recurring_day,
            template.recurring_month,
            template.next_recurring_date,
            now,
        )
