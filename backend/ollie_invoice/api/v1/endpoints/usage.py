"""
Usage API endpoint.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ollie_invoice.api.v1.middleware import require_business
from ollie_invoice.controllers.usage_controller import UsageController
from ollie_invoice.db.session import get_db
from ollie_invoice.models.business import Business
from ollie_invoice.schemas.usage import UsageResponse

router = APIRouter()


@router.get("", response_model=UsageResponse)
async def get_usage(
    business: Business = Depends(require_business),
    db: AsyncSession = Depends(get_db),
) -> UsageResponse:
    """Sends used this month against the tier's limit."""
    controller = UsageController(db)
    return await controller.get_usage(business)
