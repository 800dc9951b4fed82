"""Numeric input sanitizing."""

import math
import re
from decimal import Decimal
from typing import Any

# Leading numeric prefix, same shape a browser's parseFloat accepts
_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def sanitize_number(raw: Any) -> float:
    """
    Convert arbitrary input into a finite float.

    Strings are trimmed and their leading numeric prefix is parsed
    ("12abc" -> 12.0). Anything that does not yield a finite number,
    including None and booleans, becomes 0.0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0

    if isinstance(raw, (int, float, Decimal)):
        try:
            value = float(raw)
        except (OverflowError, ValueError):
            return 0.0
        return value if math.isfinite(value) else 0.0

    match = _NUMBER_PREFIX.match(str(raw).strip())
    if not match:
        return 0.0

    try:
        value = float(match.group(0))
    except (OverflowError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def format_number(value: float) -> str:
    """Render a number the way it is shown to users (10, 12.5)."""
    if value.is_integer():
        return str(int(value))
    return repr(value)
