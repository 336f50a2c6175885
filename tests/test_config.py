"""Tests for settings and the store factory."""

import asyncio

import pytest
from pydantic import ValidationError

from payback.config import SyncSettings, get_settings, validate_all_settings
from payback.orchestrator import create_ledger_store
from payback.services.storage import InMemoryAuditStorage


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        settings = SyncSettings()
        assert settings.debounce_ms == 250
        assert settings.debounce_seconds == 0.25
        assert settings.retry_attempts == 3

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("PAYBACK_SYNC_DEBOUNCE_MS", "400")
        assert get_settings().sync.debounce_seconds == 0.4

    def test_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            SyncSettings(retry_attempts=0)

    def test_debounce_window_bounds(self):
        with pytest.raises(ValidationError):
            SyncSettings(debounce_ms=10)
        with pytest.raises(ValidationError):
            SyncSettings(debounce_ms=5001)
        assert SyncSettings(debounce_ms=50).debounce_seconds == 0.05

    def test_validate_all_settings_reports_failures(self, monkeypatch):
        monkeypatch.setenv("PAYBACK_SYNC_DEBOUNCE_MS", "not a number")
        results = validate_all_settings()
        assert results["sync"] is False
        assert "sync_error" in results
        assert results["persistence"] is True
        assert results["app"] is True


class TestCreateLedgerStore:

    def test_factory_wires_json_store(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PAYBACK_SYNC_DEBOUNCE_MS", "50")
        path = tmp_path / "ledger.json"
        audit_storage = InMemoryAuditStorage()
        store = create_ledger_store(data_path=path, audit_storage=audit_storage)

        async def scenario():
            await store.add_group("Trip", ["Sam"])
            await store.wait_for_background_tasks()
            await store.reload()

        asyncio.run(scenario())

        assert path.exists()
        assert store.current_user.name == "You"
        assert len(audit_storage.events) == 1
