from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")


def format_currency(amount: Union[Decimal, int, float]) -> str:
    """Render an amount as ``$1,234.50``, or ``($1,234.50)`` when negative."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    text = f"${abs(value).quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"
    if value < 0:
        return f"({text})"
    return text


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)
