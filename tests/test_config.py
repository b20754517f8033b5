"""Unit tests for core/config.py -- Settings validation and the cached singleton.

Settings(_env_file=None) keeps a developer's local .env out of the picture.
"""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for var in ("DEBUG", "BCRYPT_ROUNDS", "DATABASE_URL", "TOKEN_TTL_SECONDS", "LOG_LEVEL"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None)
        assert settings.token_ttl_seconds == 3600
        assert settings.bcrypt_rounds == 12
        assert settings.database_url == "sqlite:///sso_auth.db"
        assert settings.log_level == "INFO"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("TOKEN_TTL_SECONDS", "900")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///elsewhere.db")
        settings = Settings(_env_file=None)
        assert settings.token_ttl_seconds == 900
        assert settings.database_url == "sqlite:///elsewhere.db"

    @pytest.mark.parametrize("ttl", ["0", "-60"])
    def test_non_positive_ttl_rejected(self, monkeypatch, ttl):
        monkeypatch.setenv("TOKEN_TTL_SECONDS", ttl)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize("rounds", ["3", "32"])
    def test_bcrypt_rounds_bounds(self, monkeypatch, rounds):
        monkeypatch.setenv("BCRYPT_ROUNDS", rounds)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", " debug ")
        assert Settings(_env_file=None).log_level == "DEBUG"

    def test_unknown_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
