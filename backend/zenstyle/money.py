from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_cents(value) -> int:
    """Round a fractional amount of cents to the nearest cent, half-up."""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount_cents: int, percent) -> int:
    """amount * percent / 100, rounded half-up."""
    return round_cents(Decimal(amount_cents) * to_decimal(percent) / Decimal(100))


def scale(amount_cents: int, factor) -> int:
    """amount * factor, rounded half-up (e.g. tax rate 0.19, markup 1.5)."""
    return round_cents(Decimal(amount_cents) * to_decimal(factor))
