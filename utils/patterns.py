"""Pre-compiled regex patterns for the funding tracker.

All patterns are compiled once at module import.

Usage:
    from utils.patterns import NON_ALNUM

    key = NON_ALNUM.sub("", "50203010-00")
"""

import re

# Anything that is not a letter or digit; used to compare budget codes
# typed as "50203010-00", "50203010 00" or "5020301000".
NON_ALNUM = re.compile(r'[^a-zA-Z0-9]')

# Currency symbols and codes for stripping during numeric conversion
CURRENCY_SYMBOLS = re.compile(r'(PHP|Php|[\$€£¥₹₽₱])')
