"""
Donation amount rules.

Amounts are Decimal with two places everywhere inside the app. They cross the
gateway boundary twice: as integer minor units for the line item and as a
plain decimal string in session metadata.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

MIN_DONATION = Decimal("1.00")
MAX_DONATION = Decimal("999999.99")
_CENT = Decimal("0.01")


def to_decimal(value) -> Decimal | None:
    """The value as an unrounded finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def parse_amount(value) -> Decimal | None:
    """Return the amount rounded to cents, or None if it is not a finite number."""
    amount = to_decimal(value)
    if amount is None:
        return None
    try:
        return amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def check_bounds(value) -> str | None:
    """
    Describe why value is outside the donation range, or None if it is inside.
    The minimum applies to the amount as given, before rounding to cents.
    """
    raw = to_decimal(value)
    if raw is None:
        return "amount must be a number"
    if raw < MIN_DONATION:
        return f"amount must be at least {MIN_DONATION}"
    rounded = parse_amount(raw)
    if rounded is None or rounded > MAX_DONATION:
        return f"amount must be at most {MAX_DONATION}"
    return None


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def format_amount(amount: Decimal) -> str:
    return str(amount.quantize(_CENT, rounding=ROUND_HALF_UP))


def as_float(value) -> float:
    return round(float(value or 0), 2)
