"""
Invoice Pydantic schemas: typed commands for each operation and responses.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from ollie_invoice.models.invoice import (
    InvoiceStatus,
    RecurringFrequency,
    DiscountType,
    PaymentMethod,
)


class LineItemInput(BaseModel):
    """Line item as submitted by the business."""
    description: str = Field(..., min_length=1, max_length=1000)
    quantity: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    rate: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    tax_type_id: Optional[UUID] = None


class RecurrenceFields(BaseModel):
    """Recurring schedule fields shared by create and update."""
    is_recurring: Optional[bool] = None
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_every: Optional[int] = Field(None, ge=1, le=12)
    recurring_day: Optional[int] = Field(None, ge=1, le=31)
    recurring_month: Optional[int] = Field(None, ge=1, le=12)
    next_recurring_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_schedule(self):
        if self.is_recurring and self.recurring_frequency is None:
            raise ValueError("recurring_frequency is required for recurring invoices")
        return self


class CreateInvoiceCommand(RecurrenceFields):
    """Create a draft invoice. Totals are always computed server side."""
    client_id: Optional[UUID] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=5000)
    shipping: Decimal = Field(default=Decimal("0"), ge=0)
    discount_type: Optional[DiscountType] = None
    discount_value: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.BOTH
    items: List[LineItemInput] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self):
        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            raise ValueError("due_date cannot be before issue_date")
        return self


class UpdateInvoiceCommand(RecurrenceFields):
    """Edit a draft invoice. Items, when given, replace the existing ones."""
    client_id: Optional[UUID] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=5000)
    shipping: Optional[Decimal] = Field(None, ge=0)
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    items: Optional[List[LineItemInput]] = None


class TotalsPreviewRequest(BaseModel):
    """Unsaved invoice content to compute totals for."""
    items: List[LineItemInput] = Field(default_factory=list)
    shipping: Decimal = Field(default=Decimal("0"), ge=0)
    discount_type: Optional[DiscountType] = None
    discount_value: Decimal = Field(default=Decimal("0"), ge=0)


class RecordPaymentCommand(BaseModel):
    """Record a payment received outside the gateway."""
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)


class TaxBreakdownEntry(BaseModel):
    tax_type_id: UUID
    name: str
    rate: Decimal
    amount: Decimal


class InvoiceTotalsResponse(BaseModel):
    subtotal: Decimal
    tax_breakdown: List[TaxBreakdownEntry]
    tax_amount: Decimal
    shipping: Decimal
    discount_amount: Decimal
    total: Decimal


class LineItemResponse(BaseModel):
    id: UUID
    description: str
    quantity: Decimal
    rate: Decimal
    tax_type_id: Optional[UUID] = None
    tax_amount: Decimal
    line_total: Decimal
    row_order: int

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: UUID
    invoice_id: UUID
    amount: Decimal
    method: Optional[str] = None
    notes: Optional[str] = None
    reference: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ClientSummary(BaseModel):
    id: UUID
    name: str
    company_name: Optional[str] = None
    email: Optional[str] = None

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    """Invoice as seen by its owner."""
    id: UUID
    business_id: UUID
    client_id: Optional[UUID] = None
    invoice_number: str
    status: InvoiceStatus
    display_status: Optional[InvoiceStatus] = None
    issue_date: datetime
    due_date: datetime
    subtotal: Decimal
    tax_amount: Decimal
    shipping: Decimal
    discount_type: Optional[DiscountType] = None
    discount_value: Decimal
    discount_amount: Decimal
    total: Decimal
    amount_paid: Decimal
    balance_due: Optional[Decimal] = None
    notes: Optional[str] = None
    payment_method: PaymentMethod
    payment_link: Optional[str] = None
    share_token: str
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    is_recurring: bool
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_every: int
    recurring_day: Optional[int] = None
    recurring_month: Optional[int] = None
    next_recurring_date: Optional[datetime] = None
    last_recurring_date: Optional[datetime] = None
    template_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InvoiceDetailResponse(InvoiceResponse):
    """Invoice with items, payments and client; also the rendering snapshot."""
    line_items: List[LineItemResponse] = []
    payments: List[PaymentResponse] = []
    client: Optional[ClientSummary] = None


class InvoiceListResponse(BaseModel):
    items: List[InvoiceResponse]
    total: int


class InvoiceCountResponse(BaseModel):
    count: int


class ResendResponse(BaseModel):
    message: str
    invoice: InvoiceResponse


class PublicLineItem(BaseModel):
    description: str
    quantity: Decimal
    rate: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class PublicInvoice(BaseModel):
    id: UUID
    invoice_number: str
    status: InvoiceStatus
    issue_date: datetime
    due_date: datetime
    subtotal: Decimal
    tax_amount: Decimal
    shipping: Decimal
    discount_amount: Decimal
    total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    notes: Optional[str] = None
    payment_method: PaymentMethod
    items: List[PublicLineItem]


class PublicBusiness(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = None
    currency: str
    etransfer_email: Optional[str] = None
    etransfer_instructions: Optional[str] = None

    class Config:
        from_attributes = True


class PublicClient(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True


class PublicInvoiceResponse(BaseModel):
    """Sanitized projection served by share token."""
    invoice: PublicInvoice
    business: Optional[PublicBusiness] = None
    client: Optional[PublicClient] = None
    payment_link: Optional[str] = None
