"""Numeric helpers shared by the indicator library and the scoring services."""

import math
from typing import Optional


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Divide, falling back to default for a zero, missing or non-finite denominator.

    Args:
        numerator: Dividend
        denominator: Divisor
        default: Returned when the division is undefined

    Returns:
        Quotient or default
    """
    if denominator is None or denominator == 0 or not math.isfinite(denominator):
        return default
    return numerator / denominator


def clamp(value: float, lower: float, upper: float) -> float:
    """Bound value to [lower, upper]."""
    return min(upper, max(lower, value))


def finite_or(value: Optional[float], default: float) -> float:
    """Return value as a float, or default when it is None, NaN or infinite."""
    if value is None:
        return default
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return default
    return value


def round_half_up(value: float, decimals: int = 2) -> float:
    """
    Round to a fixed number of decimals with halves rounded towards +inf.

    Args:
        value: Value to round
        decimals: Number of decimal places

    Returns:
        Rounded value
    """
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def calculate_percentage_change(
    current: float, previous: Optional[float], default: float = 0.0
) -> float:
    """Percent move from previous to current; default when previous is 0 or None."""
    if not previous:
        return default
    return (current - previous) / previous * 100
