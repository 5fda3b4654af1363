"""Shared utilities for the program funding tracker."""

# Pattern definitions
from utils.patterns import NON_ALNUM, CURRENCY_SYMBOLS

# String utilities
from utils.strings import (
    safe_float,
    safe_int,
    safe_str,
    alnum_key,
)

# Database utilities
from utils.database import (
    init_pragmas,
    get_table_count,
    table_exists,
    query_to_dicts,
    batch_upsert,
    QueryBuilder,
)

# Query building
from utils.query import build_where_clause, build_order_clause

# Validation utilities
from utils.validation import (
    ValidationIssue,
    ValidationResult,
    ValidationRegistry,
    check_record,
    ensure_valid_record,
    is_valid_fund_year,
    is_valid_amount,
    is_valid_operating_unit,
)

# Output formatting
from utils.formatting import format_amount, format_count

# Configuration
from utils.config import (
    Config,
    DatabaseConfig,
    AppConfig,
    KnownValues,
    monthly_fields,
)

# Caching
from utils.cache import TTLCache

__all__ = [
    # Patterns
    "NON_ALNUM",
    "CURRENCY_SYMBOLS",
    # Strings
    "safe_float",
    "safe_int",
    "safe_str",
    "alnum_key",
    # Database
    "init_pragmas",
    "get_table_count",
    "table_exists",
    "query_to_dicts",
    "batch_upsert",
    "QueryBuilder",
    # Query
    "build_where_clause",
    "build_order_clause",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    "ValidationRegistry",
    "check_record",
    "ensure_valid_record",
    "is_valid_fund_year",
    "is_valid_amount",
    "is_valid_operating_unit",
    # Formatting
    "format_amount",
    "format_count",
    # Config
    "Config",
    "DatabaseConfig",
    "AppConfig",
    "KnownValues",
    "monthly_fields",
    # Cache
    "TTLCache",
]
