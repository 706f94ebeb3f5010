"""Tests for currency parsing."""

from decimal import Decimal

import pytest

from teahouse.utils.money import from_cents, to_cents, to_decimal


@pytest.mark.parametrize("value, expected", [
    ("12.345", Decimal("12.35")),
    (0.1, Decimal("0.10")),
    (7, Decimal("7.00")),
    (Decimal("-0.005"), Decimal("-0.01")),
])
def test_to_decimal_rounds_half_up(value, expected):
    assert to_decimal(value) == expected


@pytest.mark.parametrize("value", ["NaN", "sNaN", "Infinity", "-inf", float("nan"), float("inf"), "abc", None, "1e40"])
def test_to_decimal_rejects_non_amounts(value):
    with pytest.raises(ValueError):
        to_decimal(value)


def test_cents_conversion():
    assert to_cents("15.50") == 1550
    assert from_cents(1550) == Decimal("15.50")
    assert from_cents(None) == Decimal("0.00")
