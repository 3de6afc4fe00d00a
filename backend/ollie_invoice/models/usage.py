"""
Monthly usage counter model.
"""

from sqlalchemy import Column, Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy import Uuid
import uuid

from ollie_invoice.db.base import Base


class MonthlyUsage(Base):
    """Invoices sent by a business during one calendar month."""

    __tablename__ = "monthly_usage"
    __table_args__ = (
        UniqueConstraint("business_id", "period_start", name="uq_monthly_usage_business_period"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    period_start = Column(Date, nullable=False)  # First day of the month
    count = Column(Integer, nullable=False, default=0)
