"""
Recurring invoice run schemas.
"""

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from ollie_invoice.models.invoice import RecurringFrequency


class RecurringErrorResponse(BaseModel):
    template_id: UUID
    invoice_number: Optional[str] = None
    message: str


class RecurringRunResponse(BaseModel):
    processed: int
    sent: int
    errors: List[RecurringErrorResponse]
    started_at: datetime
    finished_at: datetime


class UpcomingTemplate(BaseModel):
    id: UUID
    business_id: UUID
    invoice_number: str
    recurring_frequency: Optional[RecurringFrequency] = None
    next_recurring_date: Optional[datetime] = None
    last_recurring_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class RecurringStatusResponse(BaseModel):
    scheduler_running: bool
    next_run_at: Optional[datetime] = None
    last_run: Optional[RecurringRunResponse] = None
    upcoming: List[UpcomingTemplate]
