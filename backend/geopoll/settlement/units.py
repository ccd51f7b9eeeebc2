"""Conversions between whole-coin amounts and integer Octas."""

from decimal import Decimal, InvalidOperation

OCTAS_DECIMALS = 8
OCTAS_PER_COIN = 10**OCTAS_DECIMALS


def to_octas(amount: Decimal | str | int, decimals: int = OCTAS_DECIMALS) -> int:
    """Convert a whole-coin amount (e.g. "1.5") to the smallest integer unit."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {amount!r}") from None

    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got {amount!r}")
    if value < 0:
        raise ValueError(f"Amount must be non-negative, got {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Amount {amount!r} has more than {decimals} decimal places"
        )
    return int(scaled)


def from_octas(octas: int, decimals: int = OCTAS_DECIMALS) -> Decimal:
    return Decimal(octas).scaleb(-decimals)


def format_amount(octas: int, decimals: int = OCTAS_DECIMALS, symbol: str = "APT") -> str:
    """Format Octas for display, e.g. 150000000 -> '1.5 APT'."""
    value = from_octas(octas, decimals).normalize()
    return f"{value:f} {symbol}".strip()
