"""
Unit tests for utils/strings.py, utils/patterns.py and the value checks in
utils/validation.py.

No database, network, or file I/O required.
"""
import datetime

import pytest

from utils.patterns import CURRENCY_SYMBOLS, NON_ALNUM
from utils.strings import alnum_key, safe_float, safe_int, safe_str
from utils.validation import is_valid_amount, is_valid_operating_unit


# ── safe_float ────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("val, expected", [
    (None,          0.0),
    ("",            0.0),
    (42,            42.0),
    (True,          1.0),
    ("1,234.50",    1234.5),
    ("₱50,000",     50000.0),
    ("PHP 1,000",   1000.0),
    ("  7 ",        7.0),
    ("abc",         0.0),
    ("₱",           0.0),
])
def test_safe_float(val, expected):
    assert safe_float(val) == expected


def test_safe_float_custom_default():
    assert safe_float("n/a", default=-1.0) == -1.0


# ── safe_int ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("val, expected", [
    ("12", 12), (3.9, 3), ("2,024", 2024), (None, 0), ("x", 0),
])
def test_safe_int(val, expected):
    assert safe_int(val) == expected


def test_safe_int_overflow_gives_default():
    assert safe_int(float("inf"), default=5) == 5


# ── safe_str ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("val, expected", [
    (None, ""),
    ("  Tanay ", "Tanay"),
    (2024.0, "2024"),
    (2.5, "2.5"),
    (datetime.datetime(2024, 3, 15, 8, 30), "2024-03-15"),
    (datetime.date(2024, 3, 15), "2024-03-15"),
])
def test_safe_str(val, expected):
    assert safe_str(val) == expected


def test_safe_str_default():
    assert safe_str(None, default="N/A") == "N/A"


# ── alnum_key / patterns ──────────────────────────────────────────────────────

@pytest.mark.parametrize("code", ["50203010-00", "50203010 00", "5020301000", "50203010.00"])
def test_alnum_key(code):
    assert alnum_key(code) == "5020301000"


def test_alnum_key_none():
    assert alnum_key(None) == ""


def test_patterns():
    assert NON_ALNUM.sub("", "a-b c") == "abc"
    assert CURRENCY_SYMBOLS.sub("", "₱1,000 PHP").strip() == "1,000"


# ── value checks ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize("value, ok", [
    (0, True), (150000.5, True), (-1, False), (True, False), ("100", False),
    (1e15, False),
])
def test_is_valid_amount(value, ok):
    assert is_valid_amount(value) is ok


def test_is_valid_operating_unit():
    assert is_valid_operating_unit("RPMO 4A")
    assert not is_valid_operating_unit("RPMO 99")
    assert not is_valid_operating_unit("  ")
    assert is_valid_operating_unit("Central", ["Central"])
