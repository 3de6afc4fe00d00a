"""
Health service.
Reports database connectivity and background worker state.
"""

import time
import logging
from typing import Optional

from ollie_invoice.db.session import get_session_maker
from ollie_invoice.db.repositories.health_repository import HealthRepository
from ollie_invoice.schemas.health import HealthResponse
from ollie_invoice.services.base_service import BaseService
from ollie_invoice.services.notification_service import NotificationQueue
from ollie_invoice.services.scheduler import RecurringInvoiceScheduler
from ollie_invoice.utils.time import utcnow

logger = logging.getLogger(__name__)


class HealthService(BaseService):
    """Service for health check operations."""

    def __init__(
        self,
        scheduler: Optional[RecurringInvoiceScheduler] = None,
        notification_queue: Optional[NotificationQueue] = None,
    ):
        super().__init__()
        self.start_time = time.time()
        self.scheduler = scheduler
        self.notification_queue = notification_queue

    async def get_health(self) -> HealthResponse:
        """
        Get system health status.

        Returns:
            HealthResponse with status, uptime, and checks
        """
        uptime_seconds = int(time.time() - self.start_time)
        uptime_str = f"PT{uptime_seconds}S"  # ISO 8601 duration format

        checks = {}

        backlog = None
        try:
            async with get_session_maker()() as session:
                repo = HealthRepository(session=session)
                db_status = await repo.check_database()
                checks["database"] = "ok" if db_status else "error"
        except Exception as e:
            logger.warning("Database health check failed", extra={"error": str(e)})
            checks["database"] = f"error: {str(e)}"

        if checks["database"] == "ok":
            try:
                async with get_session_maker()() as session:
                    backlog = await HealthRepository(session=session).count_due_templates(utcnow())
            except Exception as e:
                logger.warning("Recurring backlog check failed", extra={"error": str(e)})

        status = "ok" if all(check == "ok" for check in checks.values()) else "degraded"

        # Informational only, they do not degrade the status
        if self.scheduler is not None:
            checks["scheduler"] = "running" if self.scheduler.is_running else "stopped"
        if backlog is not None:
            checks["recurring_backlog"] = backlog
        if self.notification_queue is not None:
            checks["notifications"] = {
                "running": self.notification_queue.is_running,
                "delivered": self.notification_queue.delivered,
                "failed": self.notification_queue.failed,
            }

        return HealthResponse(
            status=status,
            uptime=uptime_str,
            checks=checks,
        )
