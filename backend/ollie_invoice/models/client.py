"""
Client model for invoice recipients.
"""

from sqlalchemy import Column, String, ForeignKey, DateTime, Text
from sqlalchemy import Uuid
from sqlalchemy.orm import relationship
import uuid

from ollie_invoice.db.base import Base
from ollie_invoice.utils.time import utcnow


class Client(Base):
    """Client model."""

    __tablename__ = "clients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    business = relationship("Business", back_populates="clients")
