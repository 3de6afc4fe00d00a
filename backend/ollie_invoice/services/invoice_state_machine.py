"""
Invoice status rules.

Persisted statuses are draft, sent, partially_paid and paid. Overdue is a
label computed at read time from the due date; a stored ``overdue`` value
from older data is read as ``sent``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from ollie_invoice.core.exceptions import ValidationError
from ollie_invoice.models.invoice import InvoiceStatus
from ollie_invoice.services.financial_calculator import (
    PAYMENT_EPSILON,
    ZERO,
    balance_due,
    is_fully_paid,
    to_decimal,
)

ALLOWED_TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.SENT},
    InvoiceStatus.SENT: {InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID},
    InvoiceStatus.PARTIALLY_PAID: {InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PAID},
    InvoiceStatus.PAID: set(),
}

OPEN_STATUSES = {InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID}


@dataclass(frozen=True)
class PaymentOutcome:
    status: InvoiceStatus
    amount_paid: Decimal
    became_paid: bool


def normalize_status(status: Any) -> InvoiceStatus:
    """Map a stored status onto the persisted state set."""
    status = InvoiceStatus(status)
    if status == InvoiceStatus.OVERDUE:
        return InvoiceStatus.SENT
    return status


def is_overdue(status: Any, due_date: Optional[datetime], now: datetime) -> bool:
    return normalize_status(status) in OPEN_STATUSES and due_date is not None and due_date < now


def display_status(status: Any, due_date: Optional[datetime], now: datetime) -> InvoiceStatus:
    """Status shown to users, including the derived overdue label."""
    if is_overdue(status, due_date, now):
        return InvoiceStatus.OVERDUE
    return normalize_status(status)


def can_transition(current: Any, target: Any) -> bool:
    return normalize_status(target) in ALLOWED_TRANSITIONS[normalize_status(current)]


def ensure_transition(current: Any, target: Any) -> None:
    if not can_transition(current, target):
        raise ValidationError(
            f"Cannot move invoice from {normalize_status(current).value} to {normalize_status(target).value}",
            details={"status": normalize_status(current).value},
        )


def ensure_editable(status: Any) -> None:
    if normalize_status(status) != InvoiceStatus.DRAFT:
        raise ValidationError("Only draft invoices can be edited")


def send_readiness_problems(
    client: Any,
    line_items: Iterable[Any],
    total: Any,
    is_recurring: bool = False,
) -> List[str]:
    """List everything that keeps an invoice from being sent."""
    problems = []
    if is_recurring:
        problems.append("Recurring templates are not sent directly")
    if client is None:
        problems.append("A client is required")

    items = list(line_items)
    if not items:
        problems.append("At least one line item is required")
    for index, item in enumerate(items, start=1):
        if not (item.description or "").strip():
            problems.append(f"Line item {index} needs a description")
        if to_decimal(item.quantity) <= ZERO:
            problems.append(f"Line item {index} quantity must be greater than 0")
        if to_decimal(item.rate) < ZERO:
            problems.append(f"Line item {index} rate cannot be negative")

    if to_decimal(total) < ZERO:
        problems.append("Invoice total cannot be negative")
    return problems


def ensure_sendable(client: Any, line_items: Iterable[Any], total: Any, is_recurring: bool = False) -> None:
    problems = send_readiness_problems(client, line_items, total, is_recurring)
    if problems:
        raise ValidationError("Invoice is not ready to send", details={"problems": problems})


def ensure_resendable(status: Any) -> None:
    if normalize_status(status) not in OPEN_STATUSES:
        raise ValidationError("Can only resend sent, partially paid or overdue invoices")


def status_for_amount_paid(current: Any, total: Any, amount_paid: Any) -> InvoiceStatus:
    if is_fully_paid(total, amount_paid):
        return InvoiceStatus.PAID
    if to_decimal(amount_paid) > ZERO:
        return InvoiceStatus.PARTIALLY_PAID
    return normalize_status(current)


def apply_payment(current: Any, total: Any, amount_paid: Any, amount: Any) -> PaymentOutcome:
    """
    Validate a payment against an invoice and compute the resulting state.

    Raises:
        ValidationError: For non-positive amounts, payments on drafts or paid
            invoices, and amounts above the balance due
    """
    current = normalize_status(current)
    amount = to_decimal(amount)

    if amount <= ZERO:
        raise ValidationError("Payment amount must be greater than 0")
    if current == InvoiceStatus.DRAFT:
        raise ValidationError("Send the invoice before recording payments")
    if current == InvoiceStatus.PAID:
        raise ValidationError("Invoice is already paid")

    remaining = balance_due(total, amount_paid)
    if amount > remaining + PAYMENT_EPSILON:
        raise ValidationError(
            f"Payment of {amount} exceeds the balance due of {remaining}",
            details={"balance_due": str(remaining)},
        )

    new_amount_paid = to_decimal(amount_paid) + amount
    new_status = status_for_amount_paid(current, total, new_amount_paid)
    ensure_transition(current, new_status)
    return PaymentOutcome(
        status=new_status,
        amount_paid=new_amount_paid,
        became_paid=new_status == InvoiceStatus.PAID,
    )
