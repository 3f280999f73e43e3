"""Human readable labels for analytics values."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity.

    Matches the rounding clients apply, unlike the built-in ``round`` which
    rounds halves to even (``round(2.5) == 2``).
    """
    return math.floor(value + 0.5)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_duration(days: float) -> str:
    """Format a fractional day count as a coarse duration label.

    >>> format_duration(0.5)
    '< 1 day'
    >>> format_duration(10)
    '1 week'
    >>> format_duration(45)
    '2 months'
    """
    if days < 1:
        return "< 1 day"
    if days < 7:
        return _plural(round_half_up(days), "day")
    if days < 30:
        return _plural(round_half_up(days / 7), "week")
    return _plural(round_half_up(days / 30), "month")
