from decimal import Decimal, ROUND_HALF_UP

from marketcart.core.config import settings


def format_price(amount: Decimal | int | float, symbol: str | None = None) -> str:
    """Rupiah style: dot thousands separator, comma decimals only when present."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, cents = f"{abs(value):.2f}".partition(".")
    grouped = f"{int(whole):,}".replace(",", ".")
    text = grouped if cents == "00" else f"{grouped},{cents}"
    return f"{sign}{symbol or settings.currency_symbol} {text}"
