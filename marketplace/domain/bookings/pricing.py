"""Booking price computation - base price plus extra line items"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from ...errors import ValidationError
from ...models import Booking, PaymentStatus, utcnow
from ...shared.validators import validate_price

MINOR_UNIT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Parse and round an amount to the currency's minor unit"""
    try:
        amount = validate_price(value)
    except ValueError as e:
        raise ValidationError(str(e)) from None
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def _item_price(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("price", 0)
    return item.price


def compute_total(base_price: Any, extra_items: Iterable[Any]) -> Decimal:
    """
    Total = base price + sum of extra item prices.

    Items may be ExtraTask rows or dicts with a ``price`` key. Every amount
    must be non-negative.
    """
    total = to_money(base_price)
    for item in extra_items:
        total += to_money(_item_price(item))
    return total.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def reprice_booking(booking: Booking, base_price: Any) -> Decimal:
    """
    Recompute a booking's total after its line items changed.

    Any line-item change invalidates an earlier payment. There are no partial
    refunds, so a PAID record is demoted to UNPAID and must be paid again.
    """
    booking.total_price = compute_total(base_price, booking.extra_tasks)
    if booking.payment_status == PaymentStatus.PAID:
        booking.payment_status = PaymentStatus.UNPAID
    # Line-item edits live in a child table; touching the row bumps the version
    booking.updated_at = utcnow()
    return booking.total_price
