"""
Invoice financial calculation.

Pure functions over line items and a business's tax catalog. The same code
path serves totals previews and persisted invoices, so the two always agree.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from ollie_invoice.models.invoice import DiscountType

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Tolerance when comparing paid amounts against totals
PAYMENT_EPSILON = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert numbers and numeric strings to Decimal without float artifacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TaxBucket:
    name: str
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class LineAmounts:
    line_total: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax_breakdown: Dict[UUID, TaxBucket]
    tax_amount: Decimal
    shipping: Decimal
    discount_amount: Decimal
    total: Decimal
    lines: List[LineAmounts] = field(default_factory=list)


def calculate_line_total(quantity: Any, rate: Any) -> Decimal:
    return quantize_money(to_decimal(quantity) * to_decimal(rate))


def calculate_discount(subtotal: Decimal, discount_type: Optional[DiscountType], discount_value: Any) -> Decimal:
    value = to_decimal(discount_value)
    if discount_type == DiscountType.PERCENT:
        return quantize_money(subtotal * value / HUNDRED)
    if discount_type == DiscountType.AMOUNT:
        return quantize_money(value)
    return ZERO


def calculate_totals(
    line_items: Iterable[Any],
    tax_types: Iterable[Any] = (),
    shipping: Any = None,
    discount_type: Optional[DiscountType] = None,
    discount_value: Any = None,
) -> InvoiceTotals:
    """
    Derive invoice totals.

    Args:
        line_items: Objects exposing ``quantity``, ``rate`` and ``tax_type_id``
        tax_types: The business's tax catalog (objects with ``id``, ``name``, ``rate``)
        shipping: Shipping amount, default 0
        discount_type: How to read ``discount_value``; None means no discount
        discount_value: Percentage or fixed amount

    Returns:
        InvoiceTotals. A negative total from over-discounting is returned
        as is; callers decide whether it is acceptable.
    """
    catalog = {tax_type.id: tax_type for tax_type in tax_types}

    subtotal = ZERO
    raw_buckets: Dict[UUID, Decimal] = {}
    lines: List[LineAmounts] = []

    for item in line_items:
        line_total = calculate_line_total(item.quantity, item.rate)
        subtotal += line_total

        line_tax = ZERO
        tax_type = catalog.get(item.tax_type_id) if item.tax_type_id is not None else None
        if tax_type is not None:
            raw_tax = line_total * to_decimal(tax_type.rate) / HUNDRED
            raw_buckets[tax_type.id] = raw_buckets.get(tax_type.id, ZERO) + raw_tax
            line_tax = quantize_money(raw_tax)
        lines.append(LineAmounts(line_total=line_total, tax_amount=line_tax))

    tax_breakdown = {
        tax_type_id: TaxBucket(
            name=catalog[tax_type_id].name,
            rate=to_decimal(catalog[tax_type_id].rate),
            amount=quantize_money(amount),
        )
        for tax_type_id, amount in raw_buckets.items()
    }
    tax_amount = sum((bucket.amount for bucket in tax_breakdown.values()), ZERO)

    shipping_amount = quantize_money(to_decimal(shipping))
    discount_amount = calculate_discount(subtotal, discount_type, discount_value)
    total = subtotal + tax_amount + shipping_amount - discount_amount

    return InvoiceTotals(
        subtotal=subtotal,
        tax_breakdown=tax_breakdown,
        tax_amount=tax_amount,
        shipping=shipping_amount,
        discount_amount=discount_amount,
        total=total,
        lines=lines,
    )


def balance_due(total: Any, amount_paid: Any) -> Decimal:
    """Remaining amount owed on an invoice."""
    return quantize_money(to_decimal(total) - to_decimal(amount_paid))


def is_fully_paid(total: Any, amount_paid: Any) -> bool:
    return to_decimal(amount_paid) >= to_decimal(total) - PAYMENT_EPSILON
