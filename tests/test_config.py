"""
Tests for bizintel/config.py - Settings defaults and environment overrides.
"""
import tempfile

from bizintel.config import DEFAULT_CLAY_WEBHOOK_URL, Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("STORAGE_DIR", raising=False)
        settings = Settings(_env_file=None)
        assert settings.storage_backend == "file"
        assert settings.storage_dir == tempfile.gettempdir()
        assert settings.lock_stale_seconds == 5.0
        assert settings.lock_max_retries == 20
        assert settings.lock_retry_interval_seconds == 0.1
        assert settings.clay_search_webhook_url == DEFAULT_CLAY_WEBHOOK_URL
        assert settings.clay_enrichment_webhook_url == DEFAULT_CLAY_WEBHOOK_URL
        assert settings.app_source_tag == "business-intelligence-visuals"
        assert settings.stream_keepalive_seconds == 30.0

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "database")
        monkeypatch.setenv("LOCK_MAX_RETRIES", "5")
        monkeypatch.setenv("CLAY_TIMEOUT_SECONDS", "2.5")
        settings = Settings(_env_file=None)
        assert settings.storage_backend == "database"
        assert settings.lock_max_retries == 5
        assert settings.clay_timeout_seconds == 2.5

    def test_redis_required_only_with_hardening(self, monkeypatch):
        assert Settings(_env_file=None).redis_required is False

        monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
        assert Settings(_env_file=None).redis_required is True

        monkeypatch.delenv("RATE_LIMIT_ENABLED")
        monkeypatch.setenv("WEBHOOK_DEDUP_WINDOW_SECONDS", "120")
        assert Settings(_env_file=None).redis_required is True

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
