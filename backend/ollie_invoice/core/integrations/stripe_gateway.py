"""
Stripe payment gateway integration.
Creates checkout sessions for invoices and verifies webhook events.
"""

import asyncio
import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
import logging

import stripe

from ollie_invoice.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: Optional[str]


class StripeGateway:
    """Payment gateway backed by Stripe Checkout."""

    def __init__(self, secret_key: Optional[str], webhook_secret: Optional[str], public_base_url: str):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.public_base_url = public_base_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    async def create_checkout_session(self, invoice, business) -> CheckoutSession:
        """
        Create a one-off checkout session for the invoice's balance due.

        Raises:
            ExternalServiceError: If Stripe is unavailable or rejects the request
        """
        if not self.is_configured:
            raise ExternalServiceError("stripe", "gateway is not configured")

        balance = Decimal(invoice.total) - Decimal(invoice.amount_paid or 0)
        unit_amount = int((balance * 100).to_integral_value())
        pay_url = f"{self.public_base_url}/pay/{invoice.share_token}"

        params = dict(
            api_key=self.secret_key,
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": (business.currency or "USD").lower(),
                    "product_data": {
                        "name": f"Invoice #{invoice.invoice_number}",
                        "description": f"Payment for Invoice #{invoice.invoice_number}",
                    },
                    "unit_amount": unit_amount,
                },
                "quantity": 1,
            }],
            mode="payment",
            success_url=f"{pay_url}?success=true",
            cancel_url=f"{pay_url}?canceled=true",
            metadata={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
            },
        )
        if business.stripe_account_id:
            params["stripe_account"] = business.stripe_account_id

        try:
            # The SDK is synchronous
            session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
        except stripe.StripeError as e:
            raise ExternalServiceError("stripe", e.user_message or str(e)) from e

        logger.info(
            "Checkout session created",
            extra={"invoice_id": str(invoice.id), "session_id": session.id},
        )
        return CheckoutSession(session_id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify a webhook payload's signature and parse it.

        Raises:
            ValueError: If the payload is malformed or the signature is invalid
        """
        if not self.webhook_secret:
            raise ValueError("Webhook secret is not configured")
        body = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise ValueError("Invalid webhook signature") from e
        # json.JSONDecodeError is a ValueError
        return json.loads(body)
