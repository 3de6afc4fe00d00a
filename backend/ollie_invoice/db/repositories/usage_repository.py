"""
Monthly usage repository.
Counter updates are single conditional statements so concurrent sends
cannot both pass the limit check.
"""

from datetime import date
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite

from ollie_invoice.db.repositories.base_repository import BaseRepository
from ollie_invoice.models.usage import MonthlyUsage


class UsageRepository(BaseRepository[MonthlyUsage]):
    """Repository for monthly usage counters."""

    def __init__(self, session: AsyncSession):
        super().__init__(MonthlyUsage, session)

    def _insert(self):
        if self.session.bind.dialect.name == "postgresql":
            return postgresql.insert(MonthlyUsage)
        return sqlite.insert(MonthlyUsage)

    async def get_count(self, business_id: UUID, period_start: date) -> Optional[int]:
        result = await self.session.execute(
            select(MonthlyUsage.count).where(
                MonthlyUsage.business_id == business_id,
                MonthlyUsage.period_start == period_start,
            )
        )
        return result.scalar_one_or_none()

    async def ensure_period(self, business_id: UUID, period_start: date, initial_count: int) -> None:
        """Create the period row if missing; an existing row is left untouched."""
        await self.session.execute(
            self._insert()
            .values(business_id=business_id, period_start=period_start, count=initial_count)
            .on_conflict_do_nothing(index_elements=["business_id", "period_start"])
        )

    async def increment_if_below(self, business_id: UUID, period_start: date, limit: int) -> bool:
        """
        Increment the counter only while it is under ``limit``.

        Returns:
            True if the increment happened
        """
        result = await self.session.execute(
            update(MonthlyUsage)
            .where(
                MonthlyUsage.business_id == business_id,
                MonthlyUsage.period_start == period_start,
                MonthlyUsage.count < limit,
            )
            .values(count=MonthlyUsage.count + 1)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount == 1

    async def increment(self, business_id: UUID, period_start: date) -> None:
        await self.session.execute(
            update(MonthlyUsage)
            .where(
                MonthlyUsage.business_id == business_id,
                MonthlyUsage.period_start == period_start,
            )
            .values(count=MonthlyUsage.count + 1)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
