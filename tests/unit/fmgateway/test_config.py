# -*- coding: utf-8 -*-
"""Location: ./tests/unit/fmgateway/test_config.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Unit tests for gateway settings.
"""

# Third-Party
import pytest

# First-Party
from fmgateway.config import get_settings, load_settings, Settings
from fmgateway.services.errors import ConfigurationError


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.session_ttl == 780
    assert settings.cache_ttl == 840
    assert settings.session_check_period == 60
    assert settings.cache_check_period == 120
    assert settings.fm_protocol == "https"
    assert settings.fm_api_version == "v1"
    assert settings.fm_ssl_verify is False
    assert settings.mcp_transport == "stdio"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SESSION_TTL", "600")
    monkeypatch.setenv("CACHE_TTL", "30")
    monkeypatch.setenv("FM_PROTOCOL", "HTTP")
    monkeypatch.setenv("FM_SSL_VERIFY", "true")

    settings = Settings(_env_file=None)

    assert (settings.session_ttl, settings.cache_ttl, settings.fm_protocol, settings.fm_ssl_verify) == (600, 30, "http", True)


def test_env_file_is_read(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("CACHE_TTL=45\nFM_SERVER_SALES=ignored-by-settings\n")
    assert Settings(_env_file=env_file).cache_ttl == 45


def test_session_ttl_must_stay_below_backend_timeout():
    with pytest.raises(ConfigurationError, match="session_ttl"):
        load_settings(_env_file=None, session_ttl=900)


@pytest.mark.parametrize("field", ["session_ttl", "cache_ttl", "cache_max_size", "http_read_timeout"])
def test_non_positive_values_are_rejected(field):
    with pytest.raises(ConfigurationError, match="Invalid gateway settings"):
        load_settings(_env_file=None, **{field: 0})


def test_get_settings_is_cached():
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_log_level_is_normalized():
    assert Settings(_env_file=None, log_level=" warning ").log_level == "WARNING"
    with pytest.raises(ConfigurationError, match="log_level"):
        load_settings(_env_file=None, log_level="chatty")
