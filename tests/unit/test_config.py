"""Unit tests for HC Register configuration management.

Tests AppConfig loading from environment variables and defaults.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from hcregister.config import AppConfig, get_config, reset_config


class TestAppConfig:
    """Test AppConfig creation from the environment."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LOCAL_CACHE_URL", raising=False)
        config = AppConfig.from_env()

        assert config.storage.url == "sqlite:///./hc_local_cache.db"
        assert config.storage.records_key == "hc_framework_data"
        assert config.storage.activities_key == "hc_framework_data_logs"
        assert config.storage.session_key == "hc_user_session"
        assert config.backend.url is None
        assert config.backend.timeout_seconds is None
        assert config.sync.presence_interval_seconds == 5.0
        assert config.sync.presence_ttl_seconds == 10.0
        assert config.sync.activity_log_limit == 100
        assert config.locale.currency_symbol == "Rs"
        assert config.export.backup_version == "2.5"

    def test_backend_settings(self, monkeypatch):
        monkeypatch.setenv("BACKEND_URL", "http://hc.local/api/state")
        monkeypatch.setenv("BACKEND_TIMEOUT", "2.5")

        config = AppConfig.from_env()

        assert config.backend.url == "http://hc.local/api/state"
        assert config.backend.timeout_seconds == 2.5

    def test_sync_settings(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/1")
        monkeypatch.setenv("SYNC_CHANNEL", "hc_test")
        monkeypatch.setenv("PRESENCE_TTL_SECONDS", "0")
        monkeypatch.setenv("ACTIVITY_LOG_LIMIT", "50")

        config = AppConfig.from_env()

        assert config.sync.redis_url == "redis://cache:6379/1"
        assert config.sync.channel_name == "hc_test"
        assert config.sync.presence_ttl_seconds == 0.0
        assert config.sync.activity_log_limit == 50

    def test_json_logs_flag(self, monkeypatch):
        monkeypatch.setenv("JSON_LOGS", "TRUE")
        assert AppConfig.from_env().json_logs is True

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("PRESENCE_INTERVAL_SECONDS", "soon")
        with pytest.raises(ValueError):
            AppConfig.from_env()

    def test_master_schedule_path(self, monkeypatch, tmp_path):
        assert AppConfig().master_schedule_path.name == "boq_master.yaml"
        monkeypatch.setenv("BOQ_MASTER_PATH", str(tmp_path / "m.yaml"))
        assert AppConfig.from_env().master_schedule_path == Path(tmp_path / "m.yaml")


def test_get_config_is_cached_until_reset(monkeypatch):
    first = get_config()
    assert get_config() is first

    monkeypatch.setenv("CURRENCY_SYMBOL", "EUR")
    reset_config()
    assert get_config().locale.currency_symbol == "EUR"
