"""Shared currency helpers.

All amounts are Decimal. Rounding is half-up to the cent, which is how
tax forms round. Nothing in this module ever touches float arithmetic.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def round_cents(amount: Decimal) -> Decimal:
    """Round an amount half-up to the cent.

    Example:
        >>> round_cents(Decimal("2290.28"))
        Decimal('2290.28')
        >>> round_cents(Decimal("0.005"))
        Decimal('0.01')
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | str | None) -> Decimal:
    """Coerce a caller-supplied amount to Decimal.

    None becomes zero so partial inputs are usable. Floats are rejected
    because their binary representation would leak into the totals.

    Raises:
        TypeError: If value is a float or another unsupported type.
        ValueError: If a string cannot be parsed as a number.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Expected Decimal, int or str amount, got {type(value).__name__}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            return Decimal(value.strip().replace(",", "").replace("$", ""))
        except InvalidOperation as exc:
            raise ValueError(f"Not a valid amount: {value!r}") from exc
    raise TypeError(f"Expected Decimal, int or str amount, got {type(value).__name__}")


def format_currency(amount: Decimal) -> str:
    """Format a whole-dollar label such as ``$44,725``.

    Cents are dropped with half-up rounding; this is only for bracket
    range labels and notes, never for amounts that feed arithmetic.
    """
    whole = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"${whole:,}"


def format_percent(rate: Decimal, places: int = 2) -> str:
    """Format a fractional rate as a percentage, e.g. 0.0495 -> ``4.95%``."""
    quantum = Decimal(1).scaleb(-places)
    pct = (rate * HUNDRED).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{pct}%"


def rate_to_percent(rate: Decimal) -> Decimal:
    """Convert a fractional rate to a percent rounded to two places."""
    return (rate * HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
