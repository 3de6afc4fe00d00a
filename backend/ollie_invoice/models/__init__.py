"""
Database models.
Import all models here to ensure they're registered with Base.
"""

from ollie_invoice.models.business import Business, SubscriptionTier
from ollie_invoice.models.client import Client
from ollie_invoice.models.tax_type import TaxType
from ollie_invoice.models.invoice import (
    Invoice,
    InvoiceLineItem,
    Payment,
    InvoiceStatus,
    RecurringFrequency,
    DiscountType,
    PaymentMethod,
)
from ollie_invoice.models.usage import MonthlyUsage

__all__ = [
    "Business",
    "SubscriptionTier",
    "Client",
    "TaxType",
    "Invoice",
    "InvoiceLineItem",
    "Payment",
    "InvoiceStatus",
    "RecurringFrequency",
    "DiscountType",
    "PaymentMethod",
    "MonthlyUsage",
]
