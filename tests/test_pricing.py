"""Tests for discount derivation and decimal parsing."""
from decimal import Decimal

import pytest

from inventory_sync.models.pricing import derive_discounted_price, format_money, to_decimal


@pytest.mark.parametrize(
    "original_price,expected",
    [
        (20, Decimal("18.00")),
        ("20", Decimal("18.00")),
        ("19.99", Decimal("17.99")),
        (Decimal("100"), Decimal("90.00")),
        (0.1, Decimal("0.09")),
        # 0.045 rounds half-up
        ("0.05", Decimal("0.05")),
        (" 12.50 ", Decimal("11.25")),
    ],
)
def test_derive_discounted_price_for_positive_prices(original_price, expected):
    result = derive_discounted_price(original_price)
    assert result == expected
    assert result.as_tuple().exponent == -2


@pytest.mark.parametrize("original_price", [0, "0", -5, "-1.5", "", "abc", "20abc", None, "nan", "inf", True, [20]])
def test_derive_discounted_price_is_zero_for_invalid_input(original_price):
    assert derive_discounted_price(original_price) == Decimal("0.00")


def test_to_decimal_rejects_non_finite_and_bools():
    assert to_decimal("Infinity") is None
    assert to_decimal(float("nan")) is None
    assert to_decimal(False) is None
    assert to_decimal(19.99) == Decimal("19.99")


def test_format_money_pads_to_cents():
    assert format_money(Decimal("35")) == "35.00"
    assert format_money(Decimal("0.005")) == "0.01"


@pytest.mark.parametrize(
    "original_price,expected",
    [
        ("1e30", Decimal("900000000000000000000000000000.00")),
        ("123456789012345678901234567.89", Decimal("111111110111111111011111111.10")),
    ],
)
def test_derive_discounted_price_beyond_default_precision(original_price, expected):
    result = derive_discounted_price(original_price)
    assert result == expected
    assert result.as_tuple().exponent == -2


def test_format_money_large_amounts():
    assert format_money(Decimal("1e40")) == "1" + "0" * 40 + ".00"
