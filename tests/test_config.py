"""
Tests for application settings.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from commission_engine.config import Settings


class TestDatabaseUrl:
    def test_postgres_scheme_converted(self):
        s = Settings(database_url="postgres://user:pw@db:5432/commissions")
        assert s.database_url == "postgresql+asyncpg://user:pw@db:5432/commissions"

    def test_postgresql_scheme_converted(self):
        s = Settings(database_url="postgresql://user:pw@db/commissions")
        assert s.database_url == "postgresql+asyncpg://user:pw@db/commissions"

    def test_asyncpg_url_untouched(self):
        url = "postgresql+asyncpg://user:pw@db/commissions"
        assert Settings(database_url=url).database_url == url

    def test_sqlite_url_untouched(self):
        url = "sqlite+aiosqlite:///:memory:"
        assert Settings(database_url=url).database_url == url


class TestCommissionDefaults:
    def test_defaults(self, monkeypatch):
        for name in (
            "RECOMPUTE_DEBOUNCE_SECONDS",
            "DEFAULT_AGENT_RATE",
            "DEFAULT_DEVELOPERS_RATE",
            "DEFAULT_EWT_RATE",
            "VAT_DEDUCTION_MODE",
        ):
            monkeypatch.delenv(name, raising=False)
        s = Settings(_env_file=None)
        assert s.recompute_debounce_seconds == 0.7
        assert s.default_agent_rate == Decimal("4.0")
        assert s.default_developers_rate == Decimal("5.0")
        assert s.default_ewt_rate == "5"
        assert s.vat_deduction_mode == "stale"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("VAT_DEDUCTION_MODE", "gross_up")
        monkeypatch.setenv("DEFAULT_EWT_RATE", "10")
        s = Settings(_env_file=None)
        assert s.vat_deduction_mode == "gross_up"
        assert s.default_ewt_rate == "10"

    @pytest.mark.parametrize("field, value", [
        ("vat_deduction_mode", "net"),
        ("default_ewt_rate", "12"),
        ("default_developers_rate", "0"),
        ("recompute_debounce_seconds", -1),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})
