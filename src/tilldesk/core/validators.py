"""Input validation helpers shared by the request schemas."""

import html
import re
from decimal import Decimal, InvalidOperation

# Largest value a NUMERIC(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")

_TAG_RE = re.compile(r"<[^>]+>")


def validate_currency(value: Decimal | float | str, max_value: Decimal = MAX_AMOUNT) -> Decimal:
    """
    Validate a money amount.

    Raises:
        ValueError: not a finite number, negative, above ``max_value`` or
            more precise than the currency minor unit
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid currency format: {value}") from e

    if not amount.is_finite():
        raise ValueError(f"Invalid currency format: {value}")
    if amount < 0:
        raise ValueError("Currency value cannot be negative")
    if amount > max_value:
        raise ValueError(f"Currency value exceeds maximum allowed: {max_value}")
    if amount.as_tuple().exponent < -2:
        raise ValueError("Currency value cannot have more than 2 decimal places")

    return amount


def sanitize_html(value: str | None) -> str | None:
    """Strip tags and escape what is left; blank input becomes None."""
    if not value:
        return None

    cleaned = html.escape(_TAG_RE.sub("", value), quote=True).strip()
    return cleaned or None
