"""Tests for configuration loading."""

from decimal import Decimal

import pytest

from pocketbook.config import LedgerSettings, get_settings, validate_all_settings
from pocketbook.engine import BalanceMutator


class TestLedgerSettings:

    def test_defaults(self):
        settings = LedgerSettings()
        assert settings.max_wallet_balance == Decimal("1e9")
        assert settings.settlement_category == "Settlement"
        assert settings.split_description_prefix == "Split: "
        assert "currency" not in LedgerSettings.model_fields

    def test_environment_overrides_limit(self, monkeypatch):
        monkeypatch.setenv("LEDGER_MAX_WALLET_BALANCE", "5000")
        assert BalanceMutator().limit == Decimal("5000")

    def test_limit_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("LEDGER_MAX_WALLET_BALANCE", "0")
        with pytest.raises(ValueError):
            LedgerSettings()


class TestValidateAllSettings:

    def test_missing_sheets_credentials_are_reported(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["ledger"] is True
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
