"""String processing utilities for the funding tracker.

Spreadsheet cells and JSON payloads arrive as whatever the user typed:
numbers as text with peso signs and thousands separators, dates as
``datetime`` objects or strings, blanks as ``None``.  These helpers coerce
them into the plain ``str`` / ``float`` / ``int`` values the store keeps.
"""

from datetime import date, datetime

from utils.patterns import CURRENCY_SYMBOLS, NON_ALNUM


def safe_float(val, default: float = 0.0) -> float:
    """Safely convert value to float with fallback default.

    Handles:
    - None, empty strings -> default
    - Numeric types -> float
    - Strings with currency symbols, whitespace, commas
    - Invalid input -> default

    Args:
        val: Value to convert (any type)
        default: Value to return on failure (default: 0.0)

    Returns:
        float: Parsed value or default
    """
    if val is None or val == '':
        return default
    if isinstance(val, bool):
        return float(val)
    if isinstance(val, (int, float)):
        return float(val)

    try:
        s = str(val).strip()
        s = CURRENCY_SYMBOLS.sub('', s)
        s = s.replace(',', '').strip()
        return float(s) if s else default
    except (ValueError, TypeError):
        return default


def safe_int(val, default: int = 0) -> int:
    """Convert value to int via safe_float; non-numeric input gives *default*."""
    f = safe_float(val, float(default))
    try:
        return int(f)
    except (ValueError, OverflowError):
        return default


def safe_str(val, default: str = "") -> str:
    """Convert a cell value to a stripped string.

    ``None`` becomes *default*; ``datetime``/``date`` values become ISO dates
    (``YYYY-MM-DD``) because spreadsheet date cells are read back as
    datetimes; whole floats lose their ``.0`` suffix so codes typed as
    numbers survive (``2024.0`` -> ``"2024"``).
    """
    if val is None:
        return default
    if isinstance(val, datetime):
        return val.date().isoformat()
    if isinstance(val, date):
        return val.isoformat()
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def alnum_key(code: str) -> str:
    """Return *code* with every non-alphanumeric character removed.

    Example:
        "50203010-00" -> "5020301000"
    """
    return NON_ALNUM.sub('', code or '')

