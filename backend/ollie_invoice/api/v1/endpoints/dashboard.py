"""
Dashboard API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.api.v1.middleware import require_business
from ollie_invoice.controllers.dashboard_controller import DashboardController
from ollie_invoice.db.session import get_db
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.dashboard import DashboardStatsResponse

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
) -> DashboardStatsResponse:
    controller = DashboardController(db)
    return await controller.get_stats(business)
