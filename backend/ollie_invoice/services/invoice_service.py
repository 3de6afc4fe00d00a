"""
Invoice service: drafting, sending, payments and the public view.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.core.config import settings
from ollie_invoice.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from ollie_invoice.core.integrations.stripe_gateway import StripeGateway
from ollie_invoice.db.repositories.business_repository import BusinessRepository
from ollie_invoice.db.repositories.client_repository import ClientRepository
from ollie_invoice.db.repositories.invoice_repository import InvoiceRepository
from ollie_invoice.db.repositories.payment_repository import PaymentRepository
from ollie_invoice.db.repositories.tax_type_repository import TaxTypeRepository
from ollie_invoice.models.business import Business
from ollie_invoice.models.client import Client
from ollie_invoice.models.invoice import (
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    Payment,
    PaymentMethod,
    generate_share_token,
)
from ollie_invoice.schemas.invoice import (
    CreateInvoiceCommand,
    UpdateInvoiceCommand,
    RecurrenceFields,
    TotalsPreviewRequest,
    RecordPaymentCommand,
    TaxBreakdownEntry,
    InvoiceTotalsResponse,
    InvoiceResponse,
    InvoiceDetailResponse,
    InvoiceListResponse,
    PaymentResponse,
    ResendResponse,
    PublicInvoice,
    PublicLineItem,
    PublicBusiness,
    PublicClient,
    PublicInvoiceResponse,
)
from ollie_invoice.services.base_service import BaseService
from ollie_invoice.services.financial_calculator import (
    InvoiceTotals,
    ZERO,
    balance_due,
    calculate_totals,
    quantize_money,
)
from ollie_invoice.services.invoice_state_machine import (
    OPEN_STATUSES,
    apply_payment,
    display_status,
    ensure_editable,
    ensure_resendable,
    ensure_sendable,
    ensure_transition,
    normalize_status,
    send_readiness_problems,
)
from ollie_invoice.services.notification_service import NotificationKind, NotificationQueue
from ollie_invoice.services.recurrence import next_recurring_date
from ollie_invoice.services.usage_service import UsageService
from ollie_invoice.utils.time import utcnow

logger = logging.getLogger(__name__)

RECURRENCE_FIELDS = (
    "is_recurring",
    "recurring_frequency",
    "recurring_every",
    "recurring_day",
    "recurring_month",
    "next_recurring_date",
)
SCHEDULE_FIELDS = RECURRENCE_FIELDS[1:5]


def default_payment_terms(business: Business) -> int:
    """Days until due; zero means due on receipt."""
    if business.payment_terms_days is None:
        return settings.DEFAULT_PAYMENT_TERMS_DAYS
    return business.payment_terms_days


def to_invoice_response(invoice: Invoice, now: Optional[datetime] = None) -> InvoiceResponse:
    """Owner view of an invoice with the derived status and balance filled in."""
    now = now or utcnow()
    return InvoiceResponse.model_validate(invoice).model_copy(update={
        "status": normalize_status(invoice.status),
        "display_status": display_status(invoice.status, invoice.due_date, now),
        "balance_due": balance_due(invoice.total, invoice.amount_paid),
    })


def to_invoice_detail(invoice: Invoice, now: Optional[datetime] = None) -> InvoiceDetailResponse:
    now = now or utcnow()
    return InvoiceDetailResponse.model_validate(invoice).model_copy(update={
        "status": normalize_status(invoice.status),
        "display_status": display_status(invoice.status, invoice.due_date, now),
        "balance_due": balance_due(invoice.total, invoice.amount_paid),
    })


def build_line_items(items: Sequence, totals: InvoiceTotals) -> List[InvoiceLineItem]:
    """Create line item rows in submission order with their computed amounts."""
    return [
        InvoiceLineItem(
            description=item.description,
            quantity=item.quantity,
            rate=item.rate,
            tax_type_id=item.tax_type_id,
            line_total=amounts.line_total,
            tax_amount=amounts.tax_amount,
            row_order=index,
        )
        for index, (item, amounts) in enumerate(zip(items, totals.lines))
    ]


def apply_totals(invoice: Invoice, totals: InvoiceTotals) -> None:
    invoice.subtotal = totals.subtotal
    invoice.tax_amount = totals.tax_amount
    invoice.shipping = totals.shipping
    invoice.discount_amount = totals.discount_amount
    invoice.total = totals.total


class InvoiceService(BaseService):
    """Service for invoice lifecycle operations."""

    def __init__(
        self,
        session: AsyncSession,
        notification_queue: Optional[NotificationQueue] = None,
        gateway: Optional[StripeGateway] = None,
        usage_service: Optional[UsageService] = None,
    ):
        super().__init__(session)
        self.notification_queue = notification_queue
        self.gateway = gateway
        self.usage_service = usage_service or UsageService(session)
        self.invoice_repo = InvoiceRepository(session)
        self.business_repo = BusinessRepository(session)
        self.client_repo = ClientRepository(session)
        self.tax_type_repo = TaxTypeRepository(session)
        self.payment_repo = PaymentRepository(session)

    async def _get_owned(self, invoice_id: UUID, business: Business) -> Invoice:
        invoice = await self.invoice_repo.get_for_business(invoice_id, business.id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    async def _resolve_client(self, business: Business, client_id: Optional[UUID]) -> Optional[Client]:
        if client_id is None:
            return None
        client = await self.client_repo.get_for_business(client_id, business.id)
        if not client:
            raise ValidationError("Client not found", details={"client_id": str(client_id)})
        return client

    async def _totals_for(
        self,
        business: Business,
        items: Iterable,
        shipping,
        discount_type,
        discount_value,
    ) -> InvoiceTotals:
        """Compute totals against the business's tax catalog, rejecting foreign tax types."""
        items = list(items)
        catalog = await self.tax_type_repo.list_by_business(business.id)
        known = {tax_type.id for tax_type in catalog}
        for index, item in enumerate(items, start=1):
            if item.tax_type_id is not None and item.tax_type_id not in known:
                raise ValidationError(
                    f"Line item {index} uses an unknown tax type",
                    details={"tax_type_id": str(item.tax_type_id)},
                )
        return calculate_totals(items, catalog, shipping, discount_type, discount_value)

    def _apply_recurrence(self, invoice: Invoice, fields: RecurrenceFields, anchor: datetime) -> None:
        data = fields.model_dump(exclude_unset=True, include=set(RECURRENCE_FIELDS))
        for key, value in data.items():
            if key == "recurring_every" and value is None:
                value = 1
            if key == "is_recurring" and value is None:
                value = False
            setattr(invoice, key, value)

        if not invoice.is_recurring:
            invoice.next_recurring_date = None
            return
        if invoice.recurring_frequency is None:
            raise ValidationError("recurring_frequency is required for recurring invoices")
        problems = send_readiness_problems(invoice.client, invoice.line_items, invoice.total)
        if problems:
            raise ValidationError("Recurring template is not ready to send", details={"problems": problems})

        schedule_changed = any(key in data for key in SCHEDULE_FIELDS)
        if "next_recurring_date" not in data and (invoice.next_recurring_date is None or schedule_changed):
            invoice.next_recurring_date = next_recurring_date(
                invoice.recurring_frequency,
                invoice.recurring_every,
                invoice.recurring_day,
                invoice.recurring_month,
                anchor,
            )

    def _notify(self, kind: NotificationKind, invoice: Invoice, business: Business) -> None:
        if self.notification_queue is None:
            logger.warning("No notification queue configured", extra={"invoice_id": str(invoice.id)})
            return
        self.notification_queue.enqueue(kind, invoice, invoice.client, business)

    async def preview_totals(self, business: Business, request: TotalsPreviewRequest) -> InvoiceTotalsResponse:
        """Totals for unsaved content, computed exactly as they would be on save."""
        totals = await self._totals_for(
            business, request.items, request.shipping, request.discount_type, request.discount_value
        )
        return InvoiceTotalsResponse(
            subtotal=totals.subtotal,
            tax_breakdown=[
                TaxBreakdownEntry(
                    tax_type_id=tax_type_id,
                    name=bucket.name,
                    rate=bucket.rate,
                    amount=bucket.amount,
                )
                for tax_type_id, bucket in totals.tax_breakdown.items()
            ],
            tax_amount=totals.tax_amount,
            shipping=totals.shipping,
            discount_amount=totals.discount_amount,
            total=totals.total,
        )

    async def create_invoice(
        self,
        business: Business,
        command: CreateInvoiceCommand,
        now: Optional[datetime] = None,
    ) -> InvoiceDetailResponse:
        """Create a draft invoice numbered from the business's sequence."""
        now = now or utcnow()
        client = await self._resolve_client(business, command.client_id)
        totals = await self._totals_for(
            business, command.items, command.shipping, command.discount_type, command.discount_value
        )

        issue_date = command.issue_date or now
        terms = default_payment_terms(business)
        due_date = command.due_date or issue_date + timedelta(days=terms)

        invoice = Invoice(
            business_id=business.id,
            client=client,
            invoice_number=await self.business_repo.next_invoice_number(business.id),
            status=InvoiceStatus.DRAFT,
            issue_date=issue_date,
            due_date=due_date,
            notes=command.notes,
            payment_method=command.payment_method,
            discount_type=command.discount_type,
            discount_value=quantize_money(command.discount_value),
            amount_paid=ZERO,
            share_token=generate_share_token(),
            is_recurring=False,
            recurring_every=1,
            line_items=build_line_items(command.items, totals),
            payments=[],
            created_at=now,
            updated_at=now,
        )
        apply_totals(invoice, totals)
        self._apply_recurrence(invoice, command, issue_date)

        self.session.add(invoice)
        await self.session.commit()

        logger.info(
            "Invoice created",
            extra={
                "business_id": str(business.id),
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "is_recurring": invoice.is_recurring,
            },
        )
        return to_invoice_detail(invoice, now)

    async def update_invoice(
        self,
        invoice_id: UUID,
        business: Business,
        command: UpdateInvoiceCommand,
        now: Optional[datetime] = None,
    ) -> InvoiceDetailResponse:
        """
        Edit a draft. Submitted items replace the existing ones and every
        total is recalculated; client-sent totals are never accepted.
        """
        now = now or utcnow()
        invoice = await self._get_owned(invoice_id, business)
        ensure_editable(invoice.status)

        data = command.model_dump(exclude_unset=True)
        if "client_id" in data:
            invoice.client = await self._resolve_client(business, command.client_id)
        for key in ("issue_date", "due_date", "payment_method", "shipping", "discount_value"):
            if data.get(key) is not None:
                setattr(invoice, key, data[key])
        for key in ("notes", "discount_type"):
            if key in data:
                setattr(invoice, key, data[key])
        if invoice.due_date < invoice.issue_date:
            raise ValidationError("due_date cannot be before issue_date")

        items = command.items if command.items is not None else invoice.line_items
        totals = await self._totals_for(
            business, items, invoice.shipping, invoice.discount_type, invoice.discount_value
        )
        if command.items is not None:
            invoice.line_items = build_line_items(command.items, totals)
        else:
            for item, amounts in zip(invoice.line_items, totals.lines):
                item.line_total = amounts.line_total
                item.tax_amount = amounts.tax_amount
        apply_totals(invoice, totals)
        self._apply_recurrence(invoice, command, invoice.last_recurring_date or invoice.issue_date)
        invoice.updated_at = now

        await self.session.commit()
        logger.info("Invoice updated", extra={"invoice_id": str(invoice.id)})
        return to_invoice_detail(invoice, now)

    async def get_invoice(self, invoice_id: UUID, business: Business) -> InvoiceDetailResponse:
        return to_invoice_detail(await self._get_owned(invoice_id, business))

    def _status_filter(self, status: Optional[InvoiceStatus], now: datetime):
        """Translate a display status into repository filters."""
        if status is None:
            return {}
        status = InvoiceStatus(status)
        if status == InvoiceStatus.OVERDUE:
            return {"statuses": OPEN_STATUSES | {InvoiceStatus.OVERDUE}, "due_before": now}
        if status == InvoiceStatus.SENT:
            return {"statuses": {InvoiceStatus.SENT, InvoiceStatus.OVERDUE}}
        return {"statuses": {status}}

    async def list_invoices(
        self,
        business: Business,
        skip: int = 0,
        limit: int = 100,
        status: Optional[InvoiceStatus] = None,
        is_recurring: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> InvoiceListResponse:
        now = now or utcnow()
        filters = self._status_filter(status, now)
        invoices = await self.invoice_repo.list_by_business(
            business.id, skip=skip, limit=limit, is_recurring=is_recurring, **filters
        )
        total = await self.invoice_repo.count_by_business(business.id, is_recurring=is_recurring, **filters)
        return InvoiceListResponse(
            items=[to_invoice_response(invoice, now) for invoice in invoices],
            total=total,
        )

    async def count_invoices(self, business: Business) -> int:
        return await self.invoice_repo.count_by_business(business.id)

    async def delete_invoice(self, invoice_id: UUID, business: Business) -> None:
        """Delete an invoice in any state along with its items and payments."""
        invoice = await self._get_owned(invoice_id, business)
        await self.session.delete(invoice)
        await self.session.commit()
        logger.info(
            "Invoice deleted",
            extra={"invoice_id": str(invoice_id), "status": normalize_status(invoice.status).value},
        )

    async def send_invoice(
        self,
        invoice_id: UUID,
        business: Business,
        now: Optional[datetime] = None,
    ) -> InvoiceResponse:
        """
        Move a draft to sent.

        The quota reservation and the conditional status write commit
        together; the checkout session and notification follow.

        Raises:
            NotFoundError: If the invoice does not belong to the business
            ValidationError: If the invoice is not a sendable draft
            QuotaExceededError: If the monthly send limit is reached
        """
        now = now or utcnow()
        invoice = await self._get_owned(invoice_id, business)
        if normalize_status(invoice.status) != InvoiceStatus.DRAFT:
            raise ValidationError("Only draft invoices can be sent")
        ensure_sendable(invoice.client, invoice.line_items, invoice.total, invoice.is_recurring)

        await self.usage_service.reserve_send(business, now)
        if not await self.invoice_repo.mark_sent_if_draft(invoice.id, now):
            await self.session.rollback()
            raise ValidationError("Invoice has already been sent")
        await self.session.commit()
        await self.session.refresh(invoice, attribute_names=["status", "sent_at", "updated_at"])

        logger.info(
            "Invoice sent",
            extra={"business_id": str(business.id), "invoice_id": str(invoice.id)},
        )

        await self._attach_checkout(invoice, business)
        self._notify(NotificationKind.INVOICE_CREATED, invoice, business)
        return to_invoice_response(invoice, now)

    def _wants_checkout(self, invoice: Invoice, business: Business) -> bool:
        return (
            self.gateway is not None
            and self.gateway.is_configured
            and bool(business.stripe_account_id)
            and invoice.payment_method in (PaymentMethod.STRIPE, PaymentMethod.BOTH)
        )

    async def _attach_checkout(self, invoice: Invoice, business: Business) -> None:
        if not self._wants_checkout(invoice, business):
            return
        try:
            checkout = await self.gateway.create_checkout_session(invoice, business)
        except ExternalServiceError as e:
            logger.warning(
                "Checkout session not created",
                extra={"invoice_id": str(invoice.id), "error": e.message},
            )
            return
        invoice.payment_link = checkout.url
        invoice.checkout_session_id = checkout.session_id
        await self.session.commit()

    async def resend_invoice(self, invoice_id: UUID, business: Business) -> ResendResponse:
        """Queue the delivery email again. Usage is not touched."""
        invoice = await self._get_owned(invoice_id, business)
        ensure_resendable(invoice.status)
        if invoice.client is None or not invoice.client.email:
            raise ValidationError("Client does not have an email address")
        self._notify(NotificationKind.INVOICE_CREATED, invoice, business)
        logger.info("Invoice resent", extra={"invoice_id": str(invoice.id)})
        return ResendResponse(message="Invoice resent", invoice=to_invoice_response(invoice))

    async def list_payments(self, invoice_id: UUID, business: Business) -> List[PaymentResponse]:
        await self._get_owned(invoice_id, business)
        payments = await self.payment_repo.list_by_invoice(invoice_id)
        return [PaymentResponse.model_validate(payment) for payment in payments]

    async def _record(
        self,
        invoice: Invoice,
        business: Business,
        amount: Decimal,
        now: datetime,
        method: Optional[str] = None,
        notes: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> Payment:
        outcome = apply_payment(invoice.status, invoice.total, invoice.amount_paid, amount)

        payment = Payment(
            invoice_id=invoice.id,
            amount=quantize_money(amount),
            method=method,
            notes=notes,
            reference=reference,
            created_at=now,
        )
        invoice.payments.append(payment)
        await self.session.flush()

        # The ledger is the source of truth for amount_paid
        invoice.amount_paid = await self.payment_repo.sum_by_invoice(invoice.id)
        invoice.status = outcome.status
        invoice.updated_at = now

        send_thanks = False
        if outcome.became_paid:
            invoice.paid_at = invoice.paid_at or now
            if business.thank_you_enabled and invoice.thank_you_sent_at is None:
                invoice.thank_you_sent_at = now
                send_thanks = True

        await self.session.commit()
        logger.info(
            "Payment recorded",
            extra={
                "invoice_id": str(invoice.id),
                "amount": str(payment.amount),
                "status": invoice.status.value,
                "reference": reference,
            },
        )
        if send_thanks:
            self._notify(NotificationKind.PAYMENT_THANKS, invoice, business)
        return payment

    async def record_payment(
        self,
        invoice_id: UUID,
        business: Business,
        command: RecordPaymentCommand,
        now: Optional[datetime] = None,
    ) -> PaymentResponse:
        invoice = await self._get_owned(invoice_id, business)
        payment = await self._record(
            invoice,
            business,
            command.amount,
            now or utcnow(),
            method=command.method,
            notes=command.notes,
        )
        return PaymentResponse.model_validate(payment)

    async def mark_paid(
        self,
        invoice_id: UUID,
        business: Business,
        now: Optional[datetime] = None,
    ) -> InvoiceResponse:
        """Settle the remaining balance with a synthesized payment. Paid invoices are left as is."""
        now = now or utcnow()
        invoice = await self._get_owned(invoice_id, business)
        if normalize_status(invoice.status) == InvoiceStatus.PAID:
            return to_invoice_response(invoice, now)

        remaining = balance_due(invoice.total, invoice.amount_paid)
        if remaining <= ZERO:
            # Balance already covered; only the status lags behind
            ensure_transition(invoice.status, InvoiceStatus.PAID)
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = invoice.paid_at or now
            invoice.updated_at = now
            await self.session.commit()
        else:
            await self._record(invoice, business, remaining, now, method="manual", notes="Marked as paid")
        return to_invoice_response(invoice, now)

    async def confirm_gateway_payment(
        self,
        invoice_id: UUID,
        reference: str,
        amount: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Apply a payment confirmed by the gateway.

        Returns:
            True if a payment was recorded, False for repeats and paid invoices
        """
        invoice = await self.invoice_repo.get(invoice_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        if normalize_status(invoice.status) == InvoiceStatus.PAID:
            logger.info("Gateway confirmation for paid invoice ignored", extra={"invoice_id": str(invoice_id)})
            return False
        if await self.payment_repo.reference_exists(invoice.id, reference):
            logger.info(
                "Duplicate gateway confirmation ignored",
                extra={"invoice_id": str(invoice_id), "reference": reference},
            )
            return False

        remaining = balance_due(invoice.total, invoice.amount_paid)
        amount = min(amount, remaining) if amount is not None else remaining
        await self._record(invoice, invoice.business, amount, now or utcnow(), method="stripe", reference=reference)
        return True

    async def get_public_invoice(self, share_token: str, now: Optional[datetime] = None) -> PublicInvoiceResponse:
        """Sanitized projection for whoever holds the share token."""
        now = now or utcnow()
        invoice = await self.invoice_repo.get_by_share_token(share_token)
        if not invoice:
            raise NotFoundError("Invoice not found")

        public = PublicInvoice(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            status=display_status(invoice.status, invoice.due_date, now),
            issue_date=invoice.issue_date,
            due_date=invoice.due_date,
            subtotal=invoice.subtotal,
            tax_amount=invoice.tax_amount,
            shipping=invoice.shipping,
            discount_amount=invoice.discount_amount,
            total=invoice.total,
            amount_paid=invoice.amount_paid,
            balance_due=balance_due(invoice.total, invoice.amount_paid),
            notes=invoice.notes,
            payment_method=invoice.payment_method,
            items=[PublicLineItem.model_validate(item) for item in invoice.line_items],
        )
        return PublicInvoiceResponse(
            invoice=public,
            business=PublicBusiness.model_validate(invoice.business) if invoice.business else None,
            client=PublicClient.model_validate(invoice.client) if invoice.client else None,
            payment_link=invoice.payment_link,
        )
