"""
Dashboard Pydantic schemas.
"""

from pydantic import BaseModel
from typing import List
from decimal import Decimal

from ollie_invoice.schemas.invoice import InvoiceResponse


class DashboardStatsResponse(BaseModel):
    total_paid: Decimal  # Payments received in the last 30 days
    total_unpaid: Decimal
    total_overdue: Decimal
    recent_invoices: List[InvoiceResponse]
