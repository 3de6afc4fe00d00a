"""
Dashboard controller.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.base_controller import BaseController
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.dashboard import DashboardStatsResponse
from ollie_invoice.services.dashboard_service import DashboardService


class DashboardController(BaseController):
    """Controller for dashboard stats."""

    def __init__(self, session: AsyncSession):
        self.dashboard_service = DashboardService(session)

    async def get_stats(self, business: Business) -> DashboardStatsResponse:
        return await self.dashboard_service.get_stats(business)
