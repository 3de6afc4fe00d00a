"""
Cron trigger endpoints for recurring invoices.
Guarded by a shared secret header instead of user authentication.
"""

import secrets
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status

from ollie_invoice.controllers.recurring_controller import RecurringController
from ollie_invoice.core.config import settings
from ollie_invoice.deps.di_container import get_container
from ollie_invoice.schemas.recurring import RecurringRunResponse, RecurringStatusResponse

router = APIRouter()


async def require_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    """Reject callers without the configured cron secret. Unset secret disables the endpoints."""
    if not settings.CRON_SECRET or not x_cron_secret or not secrets.compare_digest(
        x_cron_secret, settings.CRON_SECRET
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret",
        )


def get_recurring_controller() -> RecurringController:
    container = get_container()
    return RecurringController(container.scheduler(), container.session_factory())


@router.post(
    "/recurring-invoices",
    response_model=RecurringRunResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def run_recurring_invoices(
    controller: RecurringController = Depends(get_recurring_controller),
) -> RecurringRunResponse:
    """Process due recurring templates now."""
    return await controller.run()


@router.get(
    "/recurring-invoices/status",
    response_model=RecurringStatusResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def recurring_invoices_status(
    controller: RecurringController = Depends(get_recurring_controller),
) -> RecurringStatusResponse:
    return await controller.get_status()
