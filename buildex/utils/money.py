"""
Amount parsing and minor-unit conversion.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional
import re

_NON_NUMERIC = re.compile(r"[^0-9.]")
_NEGATIVE = re.compile(r"^[^0-9]*-")


def resolve_amount(raw: Any) -> Optional[Decimal]:
    """
    Resolve a user- or store-supplied amount into a positive Decimal.

    Strings are stripped of everything except digits and dots, so values
    such as "₹15,000" or "15000.00 INR" resolve to 15000. A leading minus
    sign makes the amount negative, which never resolves.

    Args:
        raw: Decimal, int, float or string amount

    Returns:
        Positive Decimal rounded to two places, or None if it does not resolve
    """
    if raw is None or isinstance(raw, bool):
        return None

    try:
        if isinstance(raw, str):
            if _NEGATIVE.match(raw):
                return None
            cleaned = _NON_NUMERIC.sub("", raw)
            if not cleaned:
                return None
            amount = Decimal(cleaned)
        else:
            amount = Decimal(str(raw))
    except InvalidOperation:
        return None

    if not amount.is_finite():
        return None

    amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return amount if amount > 0 else None


def to_minor_units(amount: Decimal) -> int:
    """Convert an amount to the smallest currency unit (e.g. paise)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
