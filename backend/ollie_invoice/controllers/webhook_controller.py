"""
Payment gateway webhook controller.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.base_controller import BaseController
from ollie_invoice.core.exceptions import ValidationError
from ollie_invoice.core.integrations.stripe_gateway import StripeGateway
from ollie_invoice.services.invoice_service import InvoiceService
from ollie_invoice.services.notification_service import NotificationQueue

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class WebhookController(BaseController):
    """Controller for Stripe webhook events."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: StripeGateway,
        notification_queue: Optional[NotificationQueue] = None,
    ):
        self.gateway = gateway
        self.invoice_service = InvoiceService(session, notification_queue, gateway)

    async def handle_stripe_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify and apply a Stripe event.

        Only completed checkout sessions change state; other events are
        acknowledged and ignored.

        Raises:
            ValidationError: If the signature or payload is invalid
        """
        if not signature:
            raise ValidationError("Missing Stripe-Signature header")
        try:
            event = self.gateway.construct_event(payload, signature)
        except ValueError as e:
            logger.warning("Rejected webhook", extra={"error": str(e)})
            raise ValidationError(str(e))

        event_type = event.get("type")
        if event_type != CHECKOUT_COMPLETED:
            return {"received": True, "handled": False}

        checkout = event.get("data", {}).get("object", {})
        invoice_id = (checkout.get("metadata") or {}).get("invoice_id")
        if not invoice_id:
            logger.warning("Checkout session without invoice id", extra={"session_id": checkout.get("id")})
            return {"received": True, "handled": False}

        try:
            invoice_id = UUID(invoice_id)
        except ValueError:
            raise ValidationError("Invalid invoice id in checkout metadata")

        amount_total = checkout.get("amount_total")
        amount = Decimal(amount_total) / 100 if amount_total is not None else None
        recorded = await self.invoice_service.confirm_gateway_payment(
            invoice_id,
            reference=checkout["id"],
            amount=amount,
        )
        return {"received": True, "handled": recorded}
