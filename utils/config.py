"""Configuration management utilities for the program funding tracker.

Provides reusable pieces for:
- A base settings class that serializes to a dict
- Environment-driven application settings
- Known values (object types, fund types, tiers, operating units, roles)
"""

from pathlib import Path
from typing import Dict, List, Optional, Any
import os as _os


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}


class DatabaseConfig(Config):
    """Configuration for database operations."""

    def __init__(self):
        """Initialize database configuration."""
        super().__init__()
        self.db_path = Path(_os.getenv("APP_DB_PATH", "tracker.sqlite"))
        self.wal_mode = True
        self.synchronous = "NORMAL"
        self.busy_timeout_ms = 5000


class KnownValues:
    """Container for known valid values used in forms, filters and imports."""

    OBJECT_TYPES = ("MOOE", "CO", "PS")

    FUND_TYPES = ("Current", "Continuing", "Insertion")

    TIERS = ("Tier 1", "Tier 2")

    OPERATING_UNITS = (
        "NPMO",
        "RPMO CAR",
        "RPMO 1",
        "RPMO 2",
        "RPMO 3",
        "RPMO 4A",
        "RPMO 4B",
        "RPMO 5",
        "RPMO 6",
        "RPMO 7",
        "RPMO 8",
        "RPMO 9",
        "RPMO 10",
        "RPMO 11",
        "RPMO 12",
        "RPMO 13",
    )

    ROLES = ("Administrator", "Management", "User")

    SUBPROJECT_STATUSES = ("Proposed", "Ongoing", "Completed", "Cancelled")

    ACTIVITY_COMPONENTS = (
        "Social Preparation",
        "Production and Livelihood",
        "Marketing and Enterprise",
        "Program Management",
    )

    MONTHS = (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    )

    SHORT_MONTHS = (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    )

    # Filter value that matches every operating unit / tier / fund type
    ALL = "All"

    @classmethod
    def is_valid_fund_type(cls, value: str) -> bool:
        """Check if fund type is one of the known values."""
        return value in cls.FUND_TYPES

    @classmethod
    def is_valid_tier(cls, value: str) -> bool:
        """Check if tier is one of the known values."""
        return value in cls.TIERS

    @classmethod
    def month_key(cls, month: str) -> Optional[str]:
        """Return the short month key ("Jan") for a month name or key.

        Accepts "Jan", "jan", "January" or a 1-based month number string.

        Args:
            month: Month identifier from a request or spreadsheet

        Returns:
            Short month key, or None if the month is not recognised
        """
        text = str(month).strip()
        if text.isdigit():
            idx = int(text)
            if 1 <= idx <= 12:
                return cls.SHORT_MONTHS[idx - 1]
            return None
        lowered = text.lower()
        for short, full in zip(cls.SHORT_MONTHS, cls.MONTHS):
            if lowered in (short.lower(), full.lower()):
                return short
        return None


def monthly_fields(prefix: str) -> List[str]:
    """Return the twelve monthly column names for *prefix*.

    Example:
        monthly_fields("actual_disbursement") ->
            ["actual_disbursement_jan", ..., "actual_disbursement_dec"]
    """
    return [f"{prefix}_{m.lower()}" for m in KnownValues.SHORT_MONTHS]


# ── OPT-CFG-001: Consolidated application configuration ───────────────────────


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the application works out of the
    box without any configuration.

    Environment variables:
        APP_DB_PATH: Path to the SQLite database file (default: tracker.sqlite)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
        RATE_LIMIT_IMPORT: Max spreadsheet imports per minute per IP (default: 10)
        RATE_LIMIT_DEFAULT: Max requests per minute for other endpoints (default: 240)
        APP_PAGE_SIZE: Default list page size (default: 10)
        APP_FETCH_BATCH_SIZE: Rows per page when reading whole tables (default: 1000)
        APP_SESSION_TTL: Seconds an accomplishment worksheet stays loaded (default: 3600)
        APP_OPERATING_UNITS: Comma-separated operating units (default: KnownValues)
        TRUSTED_PROXIES: Comma-separated proxy IP addresses to trust for forwarded IPs
    """

    def __init__(self) -> None:
        super().__init__()
        self.db_path = Path(_os.getenv("APP_DB_PATH", "tracker.sqlite"))
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )
        self.rate_limit_import = int(_os.getenv("RATE_LIMIT_IMPORT", "10"))
        self.rate_limit_default = int(_os.getenv("RATE_LIMIT_DEFAULT", "240"))
        self.page_size = int(_os.getenv("APP_PAGE_SIZE", "10"))
        self.fetch_batch_size = int(_os.getenv("APP_FETCH_BATCH_SIZE", "1000"))
        self.session_ttl = float(_os.getenv("APP_SESSION_TTL", "3600"))
        raw_units = _os.getenv("APP_OPERATING_UNITS", "")
        self.operating_units: list[str] = (
            [u.strip() for u in raw_units.split(",") if u.strip()]
            or list(KnownValues.OPERATING_UNITS)
        )
        raw_proxies = _os.getenv("TRUSTED_PROXIES", "")
        self.trusted_proxies: set[str] = (
            {p.strip() for p in raw_proxies.split(",") if p.strip()}
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
