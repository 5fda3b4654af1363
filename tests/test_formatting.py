"""
Unit tests for utils/formatting.py

No database, network, or file I/O required.
"""
import pytest

from utils.formatting import format_amount, format_count


# ── format_amount ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("value", [None, 0, 0.0])
def test_format_amount_empty(value):
    assert format_amount(value) == "-"


def test_format_amount_standard():
    assert format_amount(540000) == "₱540,000.00"


def test_format_amount_precision():
    assert format_amount(1234.5, precision=0) == "₱1,234"


def test_format_amount_no_separator():
    assert format_amount(1234567.891, thousands_sep=False) == "₱1234567.89"


def test_format_amount_negative():
    assert format_amount(-2500) == "-₱2,500.00"


# ── format_count ──────────────────────────────────────────────────────────────

def test_format_count():
    assert format_count(1234567) == "1,234,567"
    assert format_count(0) == "0"
    assert format_count(None) == "-"
