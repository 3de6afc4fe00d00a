"""
Business model. The account that owns clients, tax types and invoices.
"""

from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, Enum as SQLEnum
from sqlalchemy import Uuid
from sqlalchemy.orm import relationship
import uuid
import enum

from ollie_invoice.db.base import Base
from ollie_invoice.utils.time import utcnow


class SubscriptionTier(str, enum.Enum):
    """Subscription tier enumeration."""
    FREE = "free"
    PRO = "pro"


class Business(Base):
    """Business model."""

    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(String(255), nullable=True, index=True)  # External auth subject
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    tax_number = Column(String(100), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    subscription_tier = Column(SQLEnum(SubscriptionTier), nullable=False, default=SubscriptionTier.FREE)
    payment_terms_days = Column(Integer, nullable=False, default=30)
    invoice_sequence = Column(Integer, nullable=True)  # Last issued invoice number
    stripe_account_id = Column(String(255), nullable=True)
    etransfer_email = Column(String(255), nullable=True)
    etransfer_instructions = Column(Text, nullable=True)
    send_invoice_copy = Column(Boolean, nullable=False, default=False)
    invoice_copy_email = Column(String(255), nullable=True)
    thank_you_enabled = Column(Boolean, nullable=False, default=False)
    thank_you_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    clients = relationship("Client", back_populates="business", cascade="all, delete-orphan")
    tax_types = relationship("TaxType", back_populates="business", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="business", cascade="all, delete-orphan")

    @property
    def is_pro(self) -> bool:
        return self.subscription_tier == SubscriptionTier.PRO
