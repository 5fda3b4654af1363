"""
Config tests — DatabaseConfig, AppConfig environment handling and KnownValues.
"""
from pathlib import Path

import pytest

from utils.config import AppConfig, DatabaseConfig, KnownValues, monthly_fields


# ── DatabaseConfig tests ─────────────────────────────────────────────────────

class TestDatabaseConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("APP_DB_PATH", raising=False)
        cfg = DatabaseConfig()
        assert cfg.db_path == Path("tracker.sqlite")
        assert cfg.wal_mode is True
        assert cfg.synchronous == "NORMAL"
        assert cfg.busy_timeout_ms == 5000

    def test_to_dict(self):
        d = DatabaseConfig().to_dict()
        assert set(d) == {"db_path", "wal_mode", "synchronous", "busy_timeout_ms"}


# ── AppConfig tests ──────────────────────────────────────────────────────────

class TestAppConfig:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for var in ("APP_DB_PATH", "APP_PORT", "APP_CORS_ORIGINS", "RATE_LIMIT_IMPORT",
                    "RATE_LIMIT_DEFAULT", "APP_PAGE_SIZE", "APP_SESSION_TTL",
                    "APP_OPERATING_UNITS", "TRUSTED_PROXIES"):
            monkeypatch.delenv(var, raising=False)

    def test_defaults(self):
        cfg = AppConfig.from_env()
        assert cfg.api_port == 8000
        assert cfg.cors_origins == ["*"]
        assert cfg.rate_limit_import == 10
        assert cfg.rate_limit_default == 240
        assert cfg.page_size == 10
        assert cfg.session_ttl == 3600.0
        assert cfg.operating_units == list(KnownValues.OPERATING_UNITS)
        assert cfg.trusted_proxies == set()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("APP_PORT", "9000")
        monkeypatch.setenv("APP_CORS_ORIGINS", "http://a.example, http://b.example")
        monkeypatch.setenv("APP_SESSION_TTL", "60")
        monkeypatch.setenv("TRUSTED_PROXIES", "10.0.0.1,10.0.0.2")
        cfg = AppConfig.from_env()
        assert cfg.api_port == 9000
        assert cfg.cors_origins == ["http://a.example", "http://b.example"]
        assert cfg.session_ttl == 60.0
        assert cfg.trusted_proxies == {"10.0.0.1", "10.0.0.2"}

    def test_operating_units_from_env(self, monkeypatch):
        monkeypatch.setenv("APP_OPERATING_UNITS", "Central, Field Office ,")
        assert AppConfig.from_env().operating_units == ["Central", "Field Office"]

    def test_blank_operating_units_fall_back(self, monkeypatch):
        monkeypatch.setenv("APP_OPERATING_UNITS", " , ")
        assert AppConfig.from_env().operating_units[0] == "NPMO"


# ── KnownValues tests ────────────────────────────────────────────────────────

class TestKnownValues:
    @pytest.mark.parametrize("text,key", [
        ("Jan", "Jan"), ("jan", "Jan"), ("January", "Jan"), (" september ", "Sep"),
        ("12", "Dec"), ("1", "Jan"),
    ])
    def test_month_key(self, text, key):
        assert KnownValues.month_key(text) == key

    @pytest.mark.parametrize("text", ["0", "13", "Smarch", ""])
    def test_month_key_unknown(self, text):
        assert KnownValues.month_key(text) is None

    def test_option_checks(self):
        assert KnownValues.is_valid_fund_type("Insertion")
        assert not KnownValues.is_valid_fund_type("current")
        assert KnownValues.is_valid_tier("Tier 2")
        assert not KnownValues.is_valid_tier("Tier 3")

    def test_object_type_order(self):
        assert KnownValues.OBJECT_TYPES == ("MOOE", "CO", "PS")


def test_monthly_fields():
    fields = monthly_fields("actual_disbursement")
    assert len(fields) == 12
    assert fields[0] == "actual_disbursement_jan"
    assert fields[-1] == "actual_disbursement_dec"
