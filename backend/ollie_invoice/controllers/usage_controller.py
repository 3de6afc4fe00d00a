"""
Usage controller.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.controllers.base_controller import BaseController
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.usage import UsageResponse
from ollie_invoice.services.usage_service import UsageService


class UsageController(BaseController):
    """Controller for monthly usage."""

    def __init__(self, session: AsyncSession):
        self.usage_service = UsageService(session)

    async def get_usage(self, business: Business) -> UsageResponse:
        return await self.usage_service.get_monthly_usage(business)
