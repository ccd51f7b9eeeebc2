"""Unit Tests: Octa conversions."""

from decimal import Decimal

import pytest

from geopoll.settlement import OCTAS_PER_COIN, format_amount, from_octas, to_octas


def test_whole_and_fractional_coins_convert_to_octas():
    assert to_octas(2) == 2 * OCTAS_PER_COIN
    assert to_octas("1.5") == 150_000_000
    assert to_octas(Decimal("0.00000001")) == 1
    assert to_octas("0") == 0


@pytest.mark.parametrize("amount", ["0.000000001", "-1", "abc", "NaN", "Infinity"])
def test_invalid_amounts_rejected(amount):
    with pytest.raises(ValueError):
        to_octas(amount)


def test_custom_decimals():
    assert to_octas("1.25", decimals=2) == 125
    assert from_octas(125, decimals=2) == Decimal("1.25")


def test_format_amount():
    assert format_amount(150_000_000) == "1.5 APT"
    assert format_amount(100 * OCTAS_PER_COIN) == "100 APT"
    assert format_amount(0) == "0 APT"
    assert format_amount(1) == "0.00000001 APT"
    assert format_amount(250, decimals=2, symbol="USD") == "2.5 USD"
