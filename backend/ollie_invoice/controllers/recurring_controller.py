"""
Recurring invoice controller.
Exposes the scheduler's single run routine and its status.
"""

from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.base_controller import BaseController
from ollie_invoice.db.repositories.invoice_repository import InvoiceRepository
from ollie_invoice.schemas.recurring import RecurringRunResponse, RecurringStatusResponse, UpcomingTemplate
from ollie_invoice.services.scheduler import RecurringInvoiceScheduler


class RecurringController(BaseController):
    """Controller for recurring invoice runs."""

    def __init__(self, scheduler: RecurringInvoiceScheduler, session_factory: Callable[[], AsyncSession]):
        self.scheduler = scheduler
        self.session_factory = session_factory

    async def run(self) -> RecurringRunResponse:
        result = await self.scheduler.run_once()
        return result.to_response()

    async def get_status(self, upcoming_limit: int = 20) -> RecurringStatusResponse:
        async with self.session_factory() as session:
            templates = await InvoiceRepository(session).list_upcoming_templates(upcoming_limit)
            upcoming = [UpcomingTemplate.model_validate(template) for template in templates]

        last_run = self.scheduler.last_run
        return RecurringStatusResponse(
            scheduler_running=self.scheduler.is_running,
            next_run_at=self.scheduler.next_run_at,
            last_run=last_run.to_response() if last_run else None,
            upcoming=upcoming,
        )
