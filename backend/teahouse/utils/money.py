"""Currency helpers.

Amounts are stored as integer minor units (cents) and exposed to callers as
``Decimal`` values with two fractional digits.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Quantize any numeric input to two decimal places."""
    if isinstance(value, float):
        # go through str() so 0.1 stays 0.1 instead of its binary expansion
        value = str(value)
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            # NaN and Infinity parse but are not amounts
            raise ValueError(value)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a currency amount: {value!r}")


def to_cents(value: Amount) -> int:
    return int(to_decimal(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(CENT)
