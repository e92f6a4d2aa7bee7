"""Unit tests for core/config.py -- Settings validation.

Settings are built directly with _env_file=None so the tests never read a
local .env file.
"""

import pytest
from pydantic import ValidationError

from core.config import GOOGLE_DISCOVERY_URL, Settings

_KEY = "k" * 32


def test_debug_generates_secret_key():
    settings = Settings(_env_file=None, debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_production_requires_secret_key():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False, secret_key="")


def test_short_secret_key_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, debug=True, secret_key="short")


def test_explicit_key_kept():
    assert Settings(_env_file=None, secret_key=_KEY).secret_key == _KEY


def test_google_enabled_needs_both_credentials():
    assert Settings(_env_file=None, secret_key=_KEY).google_enabled is False
    assert Settings(_env_file=None, secret_key=_KEY, google_client_id="cid").google_enabled is False
    enabled = Settings(_env_file=None, secret_key=_KEY, google_client_id="cid", google_client_secret="s")
    assert enabled.google_enabled is True


def test_defaults():
    settings = Settings(_env_file=None, secret_key=_KEY)
    assert settings.google_discovery_url == GOOGLE_DISCOVERY_URL
    assert settings.session_max_age == 7200
    assert settings.database_url.startswith("sqlite:///")
    assert settings.store_timeout_seconds > 0


def test_list_settings_from_environment(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://shop.example.com"]')
    settings = Settings(_env_file=None, secret_key=_KEY)
    assert settings.cors_origins == ["https://shop.example.com"]
