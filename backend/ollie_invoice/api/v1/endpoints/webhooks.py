"""
Payment gateway webhooks.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.webhook_controller import WebhookController
from ollie_invoice.db.session import get_db
from ollie_invoice.deps.di_container import get_container

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    """Apply completed checkout sessions to their invoices."""
    container = get_container()
    controller = WebhookController(db, container.gateway(), container.notification_queue())
    payload = await request.body()
    return await controller.handle_stripe_event(payload, stripe_signature)
