"""
In-process scheduler for recurring invoices.

Runs once at startup to catch up on anything missed while the service was
down, then once a day at the configured UTC time.
"""

import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import Optional

from ollie_invoice.core.integrations.observability import record_exception
from ollie_invoice.services.recurring_service import RecurringInvoiceService, RecurringRunResult
from ollie_invoice.utils.time import utcnow

logger = logging.getLogger(__name__)


def next_daily_run(now: datetime, hour: int, minute: int) -> datetime:
    """The next occurrence of hour:minute strictly after ``now``."""
    candidate = datetime.combine(now.date(), time(hour=hour, minute=minute))
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class RecurringInvoiceScheduler:
    """Owns the background task that drives RecurringInvoiceService."""

    def __init__(
        self,
        recurring_service: RecurringInvoiceService,
        run_hour: int = 0,
        run_minute: int = 1,
        catch_up_on_start: bool = True,
    ):
        self.recurring_service = recurring_service
        self.run_hour = run_hour
        self.run_minute = run_minute
        self.catch_up_on_start = catch_up_on_start
        self.last_run: Optional[RecurringRunResult] = None
        self.next_run_at: Optional[datetime] = None
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="recurring-invoice-scheduler")
        logger.info(
            "Recurring invoice scheduler started",
            extra={"run_at": f"{self.run_hour:02d}:{self.run_minute:02d} UTC"},
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.next_run_at = None
        logger.info("Recurring invoice scheduler stopped")

    async def run_once(self, now: Optional[datetime] = None) -> RecurringRunResult:
        """Run one pass. Concurrent callers wait for the pass in progress to finish first."""
        async with self._lock:
            result = await self.recurring_service.process_due(now)
            self.last_run = result
            return result

    async def _loop(self) -> None:
        if self.catch_up_on_start:
            await self._safe_run("startup catch-up")

        while True:
            self.next_run_at = next_daily_run(utcnow(), self.run_hour, self.run_minute)
            delay = (self.next_run_at - utcnow()).total_seconds()
            await asyncio.sleep(max(delay, 0))
            await self._safe_run("daily")

    async def _safe_run(self, trigger: str) -> None:
        try:
            result = await self.run_once()
        except Exception as e:
            # Keep the loop alive for the next day
            logger.exception("Recurring invoice run failed", extra={"trigger": trigger})
            record_exception(e, trigger=trigger)
            return
        logger.info(
            "Recurring invoice run complete",
            extra={
                "trigger": trigger,
                "processed": result.processed,
                "sent": result.sent,
                "errors": len(result.errors),
            },
        )
