"""
Invoice API endpoints.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ollie_invoice.api.v1.middleware import require_business
from ollie_invoice.controllers.invoice_controller import InvoiceController
from ollie_invoice.db.session import get_db
from ollie_invoice.deps.di_container import get_container
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
)

router = APIRouter()


def get_invoice_controller(db: AsyncSession = Depends(get_db)) -> InvoiceController:
    container = get_container()
    return InvoiceController(db, container.notification_queue(), container.gateway())


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    status: Optional[InvoiceStatus] = Query(None),
    is_recurring: Optional[bool] = Query(None),
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceListResponse:
    """List invoices; ``status=overdue`` filters on the derived label."""
    return await controller.list_invoices(
        business,
        skip=skip,
        limit=limit,
        status=status,
        is_recurring=is_recurring,
    )


@router.get("/count", response_model=InvoiceCountResponse)
async def count_invoices(
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceCountResponse:
    return await controller.count_invoices(business)


@router.post("", response_model=InvoiceDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    command: CreateInvoiceCommand,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceDetailResponse:
    """Create a draft invoice."""
    return await controller.create_invoice(business, command)


@router.post("/preview-totals", response_model=InvoiceTotalsResponse)
async def preview_totals(
    request: TotalsPreviewRequest,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceTotalsResponse:
    """Compute totals for unsaved invoice content."""
    return await controller.preview_totals(business, request)


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: UUID,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceDetailResponse:
    return await controller.get_invoice(business, invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceDetailResponse)
async def update_invoice(
    invoice_id: UUID,
    command: UpdateInvoiceCommand,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceDetailResponse:
    """Edit a draft invoice."""
    return await controller.update_invoice(business, invoice_id, command)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: UUID,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
):
    await controller.delete_invoice(business, invoice_id)


@router.post("/{invoice_id}/send", response_model=InvoiceResponse)
async def send_invoice(
    invoice_id: UUID,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceResponse:
    """Send a draft invoice to its client. Counts against the monthly quota."""
    return await controller.send_invoice(business, invoice_id)


@router.post("/{invoice_id}/resend", response_model=ResendResponse)
async def resend_invoice(
    invoice_id: UUID,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> ResendResponse:
    return await controller.resend_invoice(business, invoice_id)


@router.get("/{invoice_id}/payments", response_model=List[PaymentResponse])
async def list_payments(
    invoice_id: UUID,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> List[PaymentResponse]:
    return await controller.list_payments(business, invoice_id)


@router.post("/{invoice_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    invoice_id: UUID,
    command: RecordPaymentCommand,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> PaymentResponse:
    """Record a payment received outside the gateway."""
    return await controller.record_payment(business, invoice_id, command)


@router.post("/{invoice_id}/mark-paid", response_model=InvoiceResponse)
async def mark_paid(
    invoice_id: UUID,
    business: Business = Depends(require_business),
    controller: InvoiceController = Depends(get_invoice_controller),
) -> InvoiceResponse:
    """Settle the remaining balance."""
    return await controller.mark_paid(business, invoice_id)
