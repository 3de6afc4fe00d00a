"""
Invoice models: invoices, their line items and the payment ledger.
"""

from sqlalchemy import (
    Column, String, ForeignKey, Numeric, Integer, Boolean, DateTime, Text,
    UniqueConstraint, Enum as SQLEnum,
)
from sqlalchemy import Uuid
from sqlalchemy.orm import relationship
import secrets
import uuid
import enum

from ollie_invoice.db.base import Base
from ollie_invoice.utils.time import utcnow


class InvoiceStatus(str, enum.Enum):
    """Invoice status enumeration. OVERDUE is a read-time label only."""
    DRAFT = "draft"
    SENT = "sent"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"


class RecurringFrequency(str, enum.Enum):
    """Recurring schedule frequency."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DiscountType(str, enum.Enum):
    """How discount_value is interpreted."""
    PERCENT = "percent"
    AMOUNT = "amount"


class PaymentMethod(str, enum.Enum):
    """Payment options offered on the invoice."""
    STRIPE = "stripe"
    ETRANSFER = "etransfer"
    BOTH = "both"


def generate_share_token() -> str:
    return secrets.token_urlsafe(24)


class Invoice(Base):
    """Invoice model. Recurring invoices act as templates for generated ones."""

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("business_id", "invoice_number", name="uq_invoice_business_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    invoice_number = Column(String(20), nullable=False)
    status = Column(SQLEnum(InvoiceStatus), nullable=False, default=InvoiceStatus.DRAFT, index=True)
    issue_date = Column(DateTime, nullable=False, default=utcnow)
    due_date = Column(DateTime, nullable=False)

    # Money, maintained by the financial calculator
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping = Column(Numeric(12, 2), nullable=False, default=0)
    discount_type = Column(SQLEnum(DiscountType), nullable=True)
    discount_value = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)  # Sum of payments

    notes = Column(Text, nullable=True)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False, default=PaymentMethod.BOTH)
    payment_link = Column(String(1000), nullable=True)
    checkout_session_id = Column(String(255), nullable=True)
    share_token = Column(String(64), nullable=False, unique=True, index=True, default=generate_share_token)

    sent_at = Column(DateTime, nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)
    thank_you_sent_at = Column(DateTime, nullable=True)

    # Recurrence (only meaningful when is_recurring)
    is_recurring = Column(Boolean, nullable=False, default=False, index=True)
    recurring_frequency = Column(SQLEnum(RecurringFrequency), nullable=True)
    recurring_every = Column(Integer, nullable=False, default=1)
    recurring_day = Column(Integer, nullable=True)  # 1-31
    recurring_month = Column(Integer, nullable=True)  # 1-12
    next_recurring_date = Column(DateTime, nullable=True, index=True)
    last_recurring_date = Column(DateTime, nullable=True)
    template_id = Column(Uuid, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    business = relationship("Business", back_populates="invoices")
    client = relationship("Client")
    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.row_order",
    )
    payments = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.created_at",
    )


class InvoiceLineItem(Base):
    """Line item on an invoice."""

    __tablename__ = "invoice_line_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False, default=1)
    rate = Column(Numeric(12, 2), nullable=False)
    tax_type_id = Column(Uuid, ForeignKey("tax_types.id", ondelete="SET NULL"), nullable=True)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    line_total = Column(Numeric(12, 2), nullable=False)
    row_order = Column(Integer, nullable=False, default=0)

    # Relationships
    invoice = relationship("Invoice", back_populates="line_items")


class Payment(Base):
    """Append-only payment ledger entry."""

    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("invoice_id", "reference", name="uq_payment_invoice_reference"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(50), nullable=True)
    notes = Column(String(1000), nullable=True)
    reference = Column(String(255), nullable=True)  # Gateway reference, e.g. checkout session id
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")
