"""
Tax type model. A business-scoped flat percentage.
"""

from sqlalchemy import Column, String, ForeignKey, Numeric, Boolean, DateTime
from sqlalchemy import Uuid
from sqlalchemy.orm import relationship
import uuid

from ollie_invoice.db.base import Base
from ollie_invoice.utils.time import utcnow


class TaxType(Base):
    """Tax type model."""

    __tablename__ = "tax_types"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    rate = Column(Numeric(5, 2), nullable=False, default=0)  # Percentage
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    business = relationship("Business", back_populates="tax_types")
