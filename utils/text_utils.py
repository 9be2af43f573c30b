"""
Text utilities for spreadsheet cell values.

Cells arrive as whatever the reader produced: strings, numbers, NaN for
blanks, or None. These helpers turn them into clean text and numbers.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


def cell_text(value: Any) -> str:
    """
    Cell value as trimmed text.

    - None / NaN → ""
    - 5999.0 stays "5999.0"; no numeric reformatting is attempted
    - "  Bowl " → "Bowl"
    """
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def parse_number(value: Any) -> Optional[Decimal]:
    """
    Cell value as a Decimal, or None if it is blank or not a number.

    Whitespace (including non-breaking spaces used as thousands separators)
    is removed before parsing.
    """
    text = cell_text(value)
    if not text:
        return None

    for space in (" ", "\u00a0", "\u202f"):
        text = text.replace(space, "")

    try:
        number = Decimal(text)
    except InvalidOperation:
        return None

    if not number.is_finite():
        return None
    return number


def round_half_up(number: Decimal) -> int:
    """
    Round to the nearest integer, halves away from zero.

    Raises:
        InvalidOperation: If the result needs more digits than the decimal
                          context precision (28)
    """
    return int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
