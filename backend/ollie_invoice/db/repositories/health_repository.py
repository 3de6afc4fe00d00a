"""
Health repository.
Provides database health check functionality.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select, text

from ollie_invoice.models.invoice import Invoice


class HealthRepository:
    """Repository for health check operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check_database(self) -> bool:
        """
        Check database connectivity.

        Returns:
            True if database is accessible, False otherwise
        """
        result = await self.session.execute(text("SELECT 1"))
        return result.scalar() == 1

    async def count_due_templates(self, now) -> int:
        """Recurring templates already due, a backlog indicator for the scheduler."""
        result = await self.session.execute(
            select(func.count(Invoice.id)).where(
                Invoice.is_recurring == True,
                Invoice.next_recurring_date.is_not(None),
                Invoice.next_recurring_date <= now,
            )
        )
        return result.scalar_one()
