"""
Tests for settings loading from the environment.
"""
from pathlib import Path

import pytest

from mastergym.core import Settings, get_settings

ENV_VARS = [
    "BOT_TOKEN", "API_BASE_URL", "API_USERNAME", "API_PASSWORD", "BACKUP_TOKEN",
    "ADMIN_TELEGRAM_IDS", "STATE_FILE", "DIGEST_HOUR", "ENVIRONMENT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("mastergym.core.config.load_dotenv", lambda: None)
    return monkeypatch


def test_reads_environment(clean_env):
    clean_env.setenv("BOT_TOKEN", "123:abc")
    clean_env.setenv("API_BASE_URL", "https://api.mastergym.test")
    clean_env.setenv("API_USERNAME", "admin")
    clean_env.setenv("API_PASSWORD", "secret")
    clean_env.setenv("ADMIN_TELEGRAM_IDS", "111, 222,")
    clean_env.setenv("STATE_FILE", "/tmp/mg.json")
    clean_env.setenv("DIGEST_HOUR", "7")
    clean_env.setenv("ENVIRONMENT", "production")

    settings = get_settings()

    assert settings.bot_token == "123:abc"
    assert str(settings.api_base_url).startswith("https://api.mastergym.test")
    assert settings.admin_telegram_ids == [111, 222]
    assert settings.state_file == Path("/tmp/mg.json")
    assert settings.digest_hour == 7
    assert settings.has_credentials
    assert not settings.is_debug


def test_defaults(clean_env):
    clean_env.setenv("BOT_TOKEN", "123:abc")

    settings = get_settings()

    assert str(settings.api_base_url).startswith("http://localhost:8080")
    assert settings.admin_telegram_ids == []
    assert settings.digest_hour == 9
    assert settings.is_debug
    assert not settings.has_credentials


def test_missing_token_raises(clean_env):
    with pytest.raises(RuntimeError, match="BOT_TOKEN"):
        get_settings()


def test_invalid_value_raises(clean_env):
    clean_env.setenv("BOT_TOKEN", "123:abc")
    clean_env.setenv("DIGEST_HOUR", "25")
    with pytest.raises(RuntimeError, match="Invalid settings"):
        get_settings()


def test_admin_check():
    open_settings = Settings(bot_token="x")
    assert open_settings.is_admin(42)

    restricted = Settings(bot_token="x", admin_telegram_ids=[1, 2])
    assert restricted.is_admin(1)
    assert not restricted.is_admin(42)
