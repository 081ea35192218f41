"""
Tests for ProcLayerSettings.
"""

from __future__ import annotations

from proclayer.core.settings import ProcLayerSettings, get_settings


class TestProcLayerSettings:
    def test_defaults(self):
        s = ProcLayerSettings()
        assert s.environment == "development"
        assert s.api_prefix == "/api"
        assert s.rpc_prefix == "/trpc"
        assert s.naming_warnings == "warn"
        assert s.discovery_recursive is False
        assert s.discovery_on_invalid_export == "throw"
        assert s.is_production() is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PROCLAYER_API_PREFIX", "/v2")
        monkeypatch.setenv("PROCLAYER_ENVIRONMENT", "Production")
        s = ProcLayerSettings()
        assert s.api_prefix == "/v2"
        assert s.is_production() is True

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_env(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("PROCLAYER_NAMING_WARNINGS", "strict")
        get_settings.cache_clear()
        second = get_settings()
        assert first is not second
        assert second.naming_warnings == "strict"
