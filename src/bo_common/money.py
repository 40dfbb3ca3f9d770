"""Money and price codecs.

Balances and order amounts are stored as int cents (BIGINT) and never touch
float arithmetic. On the wire they are fixed 2-decimal strings: 200000 -> "2000.00".
Asset prices are Decimal (NUMERIC(20,8)) since sub-cent coins exist.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from pydantic import BeforeValidator

_CENT = Decimal("0.01")
_PRICE_QUANTUM = Decimal("0.00000001")


def parse_amount(raw: str | int | float | Decimal) -> int:
    """Parse a positive money amount with at most 2 decimals into cents.

    Raises ValueError on anything else (negative, zero, NaN, 3+ decimals).
    """
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValueError(f"not a number: {raw!r}") from None
    if not value.is_finite() or value <= 0:
        raise ValueError(f"amount must be positive: {raw!r}")
    if value != value.quantize(_CENT):
        raise ValueError(f"amount has more than 2 decimals: {raw!r}")
    return int(value * 100)


def cents_to_str(cents: int) -> str:
    """200000 -> '2000.00', -60000 -> '-600.00'."""
    sign = "-" if cents < 0 else ""
    abs_cents = abs(cents)
    return f"{sign}{abs_cents // 100}.{abs_cents % 100:02d}"


def parse_price(raw: str | int | float | Decimal | None) -> Decimal | None:
    """Parse a positive quote; returns None for missing or unusable input."""
    if raw is None:
        return None
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value.quantize(_PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def price_to_str(price: Decimal | None) -> str | None:
    """2 decimals for prices >= 1, up to 8 significant decimals below 1."""
    if price is None:
        return None
    if price >= 1:
        return str(price.quantize(_CENT, rounding=ROUND_HALF_UP))
    text = f"{price.quantize(_PRICE_QUANTUM, rounding=ROUND_HALF_UP):f}".rstrip("0")
    whole, _, frac = text.partition(".")
    return f"{whole}.{frac.ljust(2, '0')}"


def _amount_before(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float, Decimal)):
        raise ValueError("amount must be a number or numeric string")
    return parse_amount(raw)


# Request-schema field: accepts "2000.00" / 2000 / 2000.5, yields int cents.
AmountCents = Annotated[int, BeforeValidator(_amount_before)]
