"""
Invoice Totals - derived monetary fields

Rounding happens in a fixed order: every line total, then the subtotal,
then tax, then the grand total. Each step rounds independently, so changing
the order can move results by a cent.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Sequence, Tuple

from ledgerbook.core.exceptions import ValidationError
from ledgerbook.core.money import round2, to_decimal

ONE = Decimal("1")
HUNDRED = Decimal("100")

# Scales of the stored item and tax rate columns
ITEM_SCALE = Decimal("0.0001")
RATE_SCALE = Decimal("0.01")


def _fits(value: Decimal, scale: Decimal) -> bool:
    return value == value.quantize(scale)


@dataclass(frozen=True)
class ComputedItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    items: Tuple[ComputedItem, ...]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def _field(item: Any, name: str):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def compute_totals(items: Sequence[Any], tax_rate: Any) -> InvoiceTotals:
    """
    Derive line totals, subtotal, tax and grand total.

    items may be dicts, schema objects or InvoiceItem rows; only description,
    quantity and unit_price are read. Any line_total already present is
    ignored. Pure and idempotent.
    """
    if not items:
        raise ValidationError("At least one item is required")

    tax_rate = to_decimal(tax_rate)
    if tax_rate < 0:
        raise ValidationError("Tax rate cannot be negative")
    if not _fits(tax_rate, RATE_SCALE):
        raise ValidationError("Tax rate allows at most 2 decimal places")

    computed: List[ComputedItem] = []
    for index, item in enumerate(items, start=1):
        quantity = _field(item, "quantity")
        unit_price = _field(item, "unit_price")
        if quantity is None or unit_price is None:
            raise ValidationError(f"Item {index}: quantity and unit_price are required")

        quantity = to_decimal(quantity)
        unit_price = to_decimal(unit_price)
        if quantity < ONE:
            raise ValidationError(f"Item {index}: quantity must be at least 1")
        if unit_price < 0:
            raise ValidationError(f"Item {index}: unit price cannot be negative")
        if not (_fits(quantity, ITEM_SCALE) and _fits(unit_price, ITEM_SCALE)):
            raise ValidationError(f"Item {index}: quantity and unit price allow at most 4 decimal places")

        computed.append(ComputedItem(
            description=_field(item, "description") or "",
            quantity=quantity,
            unit_price=unit_price,
            line_total=round2(quantity * unit_price),
        ))

    subtotal = round2(sum((item.line_total for item in computed), Decimal("0")))
    tax_amount = round2(subtotal * tax_rate / HUNDRED)
    total_amount = round2(subtotal + tax_amount)

    return InvoiceTotals(
        items=tuple(computed),
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total_amount=total_amount,
    )
