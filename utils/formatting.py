"""Output formatting utilities for the funding tracker.

Used by the console summaries of ``init_tracker_db.py`` and the import
report.
"""

from typing import Optional


def format_amount(value: Optional[float], precision: int = 2,
                  thousands_sep: bool = True) -> str:
    """Format a peso amount for display.

    Args:
        value: Amount in pesos (can be None or 0)
        precision: Decimal places (default: 2 for centavos)
        thousands_sep: Add thousands separator (default: True)

    Returns:
        Formatted string like "₱1,234,567.00"

    Examples:
        format_amount(540000) -> "₱540,000.00"
        format_amount(540000, precision=0) -> "₱540,000"
        format_amount(None) -> "-"
    """
    if value is None or value == 0:
        return "-"
    sign = "-" if value < 0 else ""
    value = abs(value)
    if thousands_sep:
        return f"{sign}₱{value:,.{precision}f}"
    return f"{sign}₱{value:.{precision}f}"


def format_count(value: Optional[int]) -> str:
    """Format a count with thousands separator.

    Examples:
        format_count(1234567) -> "1,234,567"
        format_count(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:,}"
