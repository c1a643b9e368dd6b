"""
Permissive number parsing and money formatting.

Amounts arrive from forms as free text ("10,200.50", "", "abc").
Parsing never raises: anything unparsable becomes zero or "unset" (None),
matching the back-office's permissive input policy.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

logger = logging.getLogger(__name__)

NumberLike = Union[str, int, float, Decimal, None]

CENT = Decimal("0.01")


def parse_decimal(value: NumberLike) -> Optional[Decimal]:
    """
    Parse a user-entered amount.

    Thousands separators are stripped. Returns None for empty input and
    Decimal("0") for text that is not a finite number.

    Examples:
        "10,200.50" -> Decimal("10200.50")
        ""          -> None
        "abc"       -> Decimal("0")
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # str() first so 0.1 stays 0.1 and not its binary expansion
        value = str(value)

    text = value.replace(",", "").strip()
    if not text:
        return None

    try:
        parsed = Decimal(text)
    except InvalidOperation:
        logger.debug(f"Unparsable amount {value!r} normalised to 0")
        return Decimal("0")

    if not parsed.is_finite():
        logger.debug(f"Non-finite amount {value!r} normalised to 0")
        return Decimal("0")
    return parsed


def parse_amount(value: NumberLike) -> Decimal:
    """Parse an amount, treating empty input as zero."""
    parsed = parse_decimal(value)
    return parsed if parsed is not None else Decimal("0")


def is_set(value: Optional[Decimal]) -> bool:
    """True when a derived amount carries a value (not None and not zero)."""
    return value is not None and value != 0


def quantize_money(value: Optional[Decimal]) -> Optional[Decimal]:
    """Round to 2 fraction digits (half-up); None stays None."""
    if value is None:
        return None
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Optional[Decimal]) -> str:
    """
    Render an amount for display.

    Examples:
        Decimal("10200.5") -> "10,200.50"
        None               -> ""
    """
    if value is None:
        return ""
    return f"{quantize_money(value):,.2f}"
