import pytest

from core import config
from core.config import get_settings, reload_settings


@pytest.fixture
def restore_settings():
    original = get_settings()
    yield
    config._settings = original


class TestSettings:
    """Test reading settings from the environment."""

    def test_reload_reads_environment(self, monkeypatch, restore_settings):
        monkeypatch.setenv("PRICE_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
        monkeypatch.setenv("CLEANUP_SCHEDULER_ENABLED", "no")
        monkeypatch.setenv("LOG_LEVEL", "warning")

        settings = reload_settings()

        assert settings is get_settings()
        assert settings.price_cache_ttl_seconds == 60
        assert settings.cors_origins == ["https://a.example", "https://b.example"]
        assert settings.cleanup_scheduler_enabled is False
        assert settings.log_level == "WARNING"

    def test_defaults(self, monkeypatch, restore_settings):
        for name in ("PRICE_PROVIDER", "CHAT_MODEL", "BURNER_RETENTION_HOURS"):
            monkeypatch.delenv(name, raising=False)

        settings = reload_settings()

        assert settings.price_provider == "coingecko"
        assert settings.chat_model == "gpt-3.5-turbo"
        assert settings.burner_retention_hours == 24

    def test_chat_key_follows_base_url(self, monkeypatch, restore_settings):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        monkeypatch.setenv("REPLOY_API_KEY", "rp-key")
        monkeypatch.setenv("CHAT_BASE_URL", "https://api.reploy.ai/v1")
        assert reload_settings().chat_api_key == "rp-key"

        monkeypatch.delenv("CHAT_BASE_URL")
        assert reload_settings().chat_api_key == "sk-openai"
