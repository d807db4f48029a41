"""
Money — integer minor units.

Every amount inside the core is an ``int`` number of cents. Conversion from
and to decimal major units happens only at the boundaries.

    to_minor("249.99")            # 24999
    apply_rate(49998, Decimal("0.10"))  # 5000 (half-up)
    format_minor(49498)           # "$494.98"
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from shopsync._types import Minor

CENT = Decimal("0.01")
_UNIT = Decimal(1)


def to_minor(amount: Decimal | int | float | str) -> Minor:
    """Convert a major-unit amount (dollars) to cents, rounding half-up."""
    if isinstance(amount, float):
        # repr round-trips, Decimal(float) would not
        amount = repr(amount)
    value = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    return int(value * 100)


def from_minor(minor: Minor) -> Decimal:
    """Convert cents back to a major-unit Decimal with two places."""
    return (Decimal(minor) / 100).quantize(CENT)


def apply_rate(minor: Minor, rate: Decimal) -> Minor:
    """Multiply an amount by a rate and round half-up to the cent."""
    return int((Decimal(minor) * rate).quantize(_UNIT, rounding=ROUND_HALF_UP))


def format_minor(minor: Minor, symbol: str = "$") -> str:
    sign = "-" if minor < 0 else ""
    return f"{sign}{symbol}{from_minor(abs(minor)):,}"


__all__ = ("CENT", "to_minor", "from_minor", "apply_rate", "format_minor")
