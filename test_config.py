"""Tests for Settings.from_env and the runtime wiring built from it."""

from pathlib import Path

import pytest

from connectors import LocalLedgerTransport
from core.config import DEFAULT_EXCLUDED_CATALOG_ITEMS, Settings
from intake.layouts import VENDOR_BILL_LAYOUT
from models.refs import Scope
from workflows.runtime import build_transport, workbook_for


ENV_VARS = [
    "SYNC_ENVIRONMENT", "REFERENCE_DB_PATH", "ACCOUNT_ITEM_MAP_PATH",
    "LEGACY_ACCOUNT_MAP_PATH", "CANONICAL_ACCOUNT_MAP_PATH", "EXCLUDED_CATALOG_ITEMS",
    "SYNC_WRITE_DELAY_MS", "SYNC_ERROR_DISPLAY_LIMIT", "WORKBOOK_DIR",
    "TRANSPORT_TYPE", "LEDGER_PATH", "LOG_LEVEL", "LOG_JSON",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Environment variables -> Settings."""

    def test_defaults(self, clean_env):
        settings = Settings.from_env()

        assert settings.scope == Scope.SANDBOX
        assert settings.excluded_catalog_items == DEFAULT_EXCLUDED_CATALOG_ITEMS
        assert settings.write_delay_seconds == 0.1
        assert settings.error_display_limit == 10
        assert settings.account_item_map_path is None
        assert settings.transport_type == "local_ledger"
        assert settings.log_json is False

    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("SYNC_ENVIRONMENT", " Production ")
        clean_env.setenv("EXCLUDED_CATALOG_ITEMS", "Placeholder, ,Sample Item")
        clean_env.setenv("SYNC_WRITE_DELAY_MS", "250")
        clean_env.setenv("WORKBOOK_DIR", str(tmp_path))
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("LOG_JSON", "yes")

        settings = Settings.from_env()

        assert settings.scope == Scope.PRODUCTION
        assert settings.excluded_catalog_items == ["Placeholder", "Sample Item"]
        assert settings.write_delay_seconds == 0.25
        assert settings.workbook_dir == tmp_path
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True

    def test_invalid_environment(self, clean_env):
        clean_env.setenv("SYNC_ENVIRONMENT", "staging")
        with pytest.raises(ValueError, match="SYNC_ENVIRONMENT"):
            Settings.from_env()

    def test_negative_delay_is_zero(self):
        assert Settings(write_delay_ms=-5).write_delay_seconds == 0


class TestRuntime:

    def test_transport_from_settings(self, tmp_path):
        settings = Settings(environment="production", ledger_path=tmp_path / "ledger.json")
        transport = build_transport(settings)

        assert isinstance(transport, LocalLedgerTransport)
        assert transport.scope == Scope.PRODUCTION

    def test_workbook_per_layout(self, tmp_path):
        settings = Settings(workbook_dir=tmp_path)
        assert workbook_for(settings, VENDOR_BILL_LAYOUT).directory == tmp_path / "bills"
        assert workbook_for(settings, VENDOR_BILL_LAYOUT, Path("/x")).directory == Path("/x")
