"""
Invoice controller.
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.base_controller import BaseController
from ollie_invoice.core.integrations.stripe_gateway import StripeGateway
from ollie_invoice.models.business import Business
from ollie_invoice.models.invoice import InvoiceStatus
from ollie_invoice.schemas.invoice import (
    CreateInvoiceCommand,
    UpdateInvoiceCommand,
    TotalsPreviewRequest,
    RecordPaymentCommand,
    InvoiceTotalsResponse,
    InvoiceResponse,
    InvoiceDetailResponse,
    InvoiceListResponse,
    InvoiceCountResponse,
    PaymentResponse,
    ResendResponse,
    PublicInvoiceResponse,
)
from ollie_invoice.services.invoice_service import InvoiceService
from ollie_invoice.services.notification_service import NotificationQueue


class InvoiceController(BaseController):
    """Controller for invoice operations."""

    def __init__(
        self,
        session: AsyncSession,
        notification_queue: Optional[NotificationQueue] = None,
        gateway: Optional[StripeGateway] = None,
    ):
        self.invoice_service = InvoiceService(session, notification_queue, gateway)

    async def list_invoices(
        self,
        business: Business,
        skip: int = 0,
        limit: int = 100,
        status: Optional[InvoiceStatus] = None,
        is_recurring: Optional[bool] = None,
    ) -> InvoiceListResponse:
        return await self.invoice_service.list_invoices(
            business,
            skip=skip,
            limit=limit,
            status=status,
            is_recurring=is_recurring,
        )

    async def count_invoices(self, business: Business) -> InvoiceCountResponse:
        return InvoiceCountResponse(count=await self.invoice_service.count_invoices(business))

    async def create_invoice(self, business: Business, command: CreateInvoiceCommand) -> InvoiceDetailResponse:
        return await self.invoice_service.create_invoice(business, command)

    async def preview_totals(self, business: Business, request: TotalsPreviewRequest) -> InvoiceTotalsResponse:
        return await self.invoice_service.preview_totals(business, request)

    async def get_invoice(self, business: Business, invoice_id: UUID) -> InvoiceDetailResponse:
        return await self.invoice_service.get_invoice(invoice_id, business)

    async def update_invoice(
        self,
        business: Business,
        invoice_id: UUID,
        command: UpdateInvoiceCommand,
    ) -> InvoiceDetailResponse:
        return await self.invoice_service.update_invoice(invoice_id, business, command)

    async def delete_invoice(self, business: Business, invoice_id: UUID) -> None:
        await self.invoice_service.delete_invoice(invoice_id, business)

    async def send_invoice(self, business: Business, invoice_id: UUID) -> InvoiceResponse:
        return await self.invoice_service.send_invoice(invoice_id, business)

    async def resend_invoice(self, business: Business, invoice_id: UUID) -> ResendResponse:
        return await self.invoice_service.resend_invoice(invoice_id, business)

    async def list_payments(self, business: Business, invoice_id: UUID) -> List[PaymentResponse]:
        return await self.invoice_service.list_payments(invoice_id, business)

    async def record_payment(
        self,
        business: Business,
        invoice_id: UUID,
        command: RecordPaymentCommand,
    ) -> PaymentResponse:
        return await self.invoice_service.record_payment(invoice_id, business, command)

    async def mark_paid(self, business: Business, invoice_id: UUID) -> InvoiceResponse:
        return await self.invoice_service.mark_paid(invoice_id, business)

    async def get_public_invoice(self, share_token: str) -> PublicInvoiceResponse:
        return await self.invoice_service.get_public_invoice(share_token)
