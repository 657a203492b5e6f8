"""Exact decimal arithmetic for prices, line totals and order totals.

Every amount is a ``Decimal`` rounded to cents with ROUND_HALF_UP, both for
storage and for display. Floats are converted through ``str`` so that
``0.1`` becomes ``Decimal("0.1")`` and not its binary approximation.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Tuple, Union

from cafe_pos.core.config import settings
from cafe_pos.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, int, float, str]


def to_money(value: Amount, field: str = "amount") -> Decimal:
    """Convert a user or database value into a ``Decimal``."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(f"{field} is not a valid amount: {value!r}", field=field)
    else:
        raise ValidationError(f"{field} must be a number", field=field)

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite amount", field=field)
    return result


def quantize_money(value: Amount) -> Decimal:
    """Round to two fraction digits, half-up."""
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Amount) -> Decimal:
    """Return ``quantity * unit_price`` for one order line.

    Raises:
        ValidationError: quantity is not a positive integer or the price is negative.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(
            f"Quantity must be a positive integer, got {quantity!r}", field="quantity"
        )
    price = to_money(unit_price, field="unit_price")
    if price < 0:
        raise ValidationError(f"Unit price cannot be negative, got {price}", field="unit_price")
    return quantize_money(price * quantity)


def order_total(lines: Iterable[Tuple[int, Amount]]) -> Decimal:
    """Sum the line totals of ``(quantity, unit_price)`` pairs."""
    total = ZERO
    for quantity, unit_price in lines:
        total += line_total(quantity, unit_price)
    return quantize_money(total)


def format_currency(amount: Amount, symbol: Optional[str] = None) -> str:
    """Format an amount for display, e.g. ``$9.50`` or ``-$1.25``."""
    if symbol is None:
        symbol = settings.currency_symbol
    value = quantize_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value)}"
