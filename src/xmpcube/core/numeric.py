"""
Numeric helpers shared by the estimators.
"""

import math
from typing import Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def is_number(value: Optional[float]) -> bool:
    """True for a real, finite number. None and NaN count as missing."""
    if value is None:
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False
