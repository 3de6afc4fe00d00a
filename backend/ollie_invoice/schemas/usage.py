"""
Usage Pydantic schemas.
"""

from pydantic import BaseModel
from typing import Optional
from datetime import date

from ollie_invoice.models.business import SubscriptionTier


class UsageResponse(BaseModel):
    """Monthly send usage. ``limit`` is None for unlimited tiers."""
    tier: SubscriptionTier
    count: int
    limit: Optional[int] = None
    can_send: bool
    period_start: date
    reset_date: date
