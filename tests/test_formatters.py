from decimal import Decimal

from marketcart.utils.formatters import format_price


def test_whole_amounts_have_no_decimals() -> None:
    assert format_price(Decimal("35000")) == "Rp 35.000"
    assert format_price(0) == "Rp 0"


def test_fractional_amounts_use_comma() -> None:
    assert format_price(Decimal("1234.5")) == "Rp 1.234,50"


def test_negative_amount_and_custom_symbol() -> None:
    assert format_price(Decimal("-1500000"), symbol="IDR") == "-IDR 1.500.000"
