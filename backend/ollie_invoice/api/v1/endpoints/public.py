"""
Public invoice endpoint.
Unauthenticated; access is granted by the share token alone.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.invoice_controller import InvoiceController
from ollie_invoice.core.config import settings
from ollie_invoice.core.rate_limit import limiter
from ollie_invoice.db.session import get_db
from ollie_invoice.schemas.invoice import PublicInvoiceResponse

router = APIRouter()


@router.get("/invoices/{share_token}", response_model=PublicInvoiceResponse)
@limiter.limit(settings.PUBLIC_RATE_LIMIT)
async def get_public_invoice(
    request: Request,
    share_token: str,
    db: AsyncSession = Depends(get_db),
) -> PublicInvoiceResponse:
    """Sanitized invoice view for payment pages."""
    controller = InvoiceController(db)
    return await controller.get_public_invoice(share_token)
