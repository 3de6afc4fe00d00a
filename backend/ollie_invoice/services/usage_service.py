"""
Monthly usage metering for the free/pro tiers.
"""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.core.config import settings
from ollie_invoice.core.exceptions import QuotaExceededError
from ollie_invoice.db.repositories.invoice_repository import InvoiceRepository
from ollie_invoice.db.repositories.usage_repository import UsageRepository
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.usage import UsageResponse
from ollie_invoice.services.base_service import BaseService
from ollie_invoice.utils.time import month_start, next_month_start, utcnow

logger = logging.getLogger(__name__)


class UsageService(BaseService):
    """Answers whether a business may send another invoice this month and records sends."""

    def __init__(self, session: AsyncSession, free_tier_limit: Optional[int] = None):
        super().__init__(session)
        self.usage_repo = UsageRepository(session)
        self.invoice_repo = InvoiceRepository(session)
        self.free_tier_limit = (
            free_tier_limit if free_tier_limit is not None else settings.FREE_TIER_MONTHLY_INVOICE_LIMIT
        )

    def limit_for(self, business: Business) -> Optional[int]:
        """Monthly send limit for the business's tier; None means unlimited."""
        if business.is_pro:
            return None
        return self.free_tier_limit

    async def _sent_this_month(self, business: Business, now: datetime) -> int:
        start = datetime.combine(month_start(now), datetime.min.time())
        end = datetime.combine(next_month_start(now), datetime.min.time())
        return await self.invoice_repo.count_sent_between(business.id, start, end)

    async def _ensure_period(self, business: Business, now: datetime):
        period = month_start(now)
        # A new row is seeded from the sends already on record for the month
        await self.usage_repo.ensure_period(
            business.id,
            period,
            initial_count=await self._sent_this_month(business, now),
        )
        return period

    async def get_monthly_usage(self, business: Business, now: Optional[datetime] = None) -> UsageResponse:
        now = now or utcnow()
        stored = await self.usage_repo.get_count(business.id, month_start(now)) or 0
        actual = await self._sent_this_month(business, now)
        count = max(stored, actual)
        limit = self.limit_for(business)
        return UsageResponse(
            tier=business.subscription_tier,
            count=count,
            limit=limit,
            can_send=limit is None or count < limit,
            period_start=month_start(now),
            reset_date=next_month_start(now),
        )

    async def reserve_send(self, business: Business, now: Optional[datetime] = None) -> None:
        """
        Count one send against this month's quota.

        Must run in the same transaction as the status change it pays for.

        Raises:
            QuotaExceededError: If the tier's limit is already reached
        """
        now = now or utcnow()
        period = await self._ensure_period(business, now)
        limit = self.limit_for(business)

        if limit is None:
            await self.usage_repo.increment(business.id, period)
            return

        if not await self.usage_repo.increment_if_below(business.id, period, limit):
            count = await self.usage_repo.get_count(business.id, period) or limit
            logger.info(
                "Monthly invoice quota reached",
                extra={"business_id": str(business.id), "count": count, "limit": limit},
            )
            raise QuotaExceededError(count=count, limit=limit)

    async def record_send(self, business: Business, now: Optional[datetime] = None) -> None:
        """Count a system-authored send without enforcing the limit."""
        now = now or utcnow()
        period = await self._ensure_period(business, now)
        await self.usage_repo.increment(business.id, period)
