"""
Formatting and arithmetic helpers
"""

import math


def _missing(value):
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_currency(value, decimals=2):
    """Format number as USD, e.g. 1234.5 -> '$1,234.50'"""
    if _missing(value):
        return 'N/A'
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(value):,.{decimals}f}"


def format_number(value, decimals=0):
    if _missing(value):
        return 'N/A'
    return f"{value:,.{decimals}f}"


def format_percent(value, decimals=1):
    """Format a fraction as a percentage (0.05 -> '5.0%')"""
    if _missing(value):
        return 'N/A'
    return f"{value * 100:.{decimals}f}%"


def format_signed_pct(value, decimals=1):
    """Format an already-scaled percentage with an explicit sign (12.3 -> '+12.3%')"""
    if _missing(value):
        return 'N/A'
    return f"{value:+.{decimals}f}%"


def round_half_up(value):
    """Round to the nearest integer, halves away from negative infinity"""
    return int(math.floor(value + 0.5))


def safe_divide(numerator, denominator):
    """Return numerator / denominator, or None when the denominator is zero or missing"""
    if not denominator:
        return None
    return numerator / denominator
