# tests/test_settings.py
"""Tests for configuration loading."""

from __future__ import annotations

import pytest

from corrector_proxy.core.settings import ConfigurationError, load_settings
from corrector_proxy.main import create_app, run


def test_defaults_match_documented_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    settings = load_settings(_env_file=None)
    assert settings.openai_api_key == "sk-test"
    assert settings.port == 8787
    assert settings.proxy_env == "local"
    assert settings.cache_ttl_ms == 300_000
    assert settings.cache_max_entries == 1000
    assert settings.token_rate_window_ms == 60_000
    assert settings.token_rate_max == 60
    assert settings.global_rate_max == 60
    assert settings.openai_timeout_ms == 15_000
    assert settings.openai_timeout_seconds == 15.0
    assert settings.max_text_length == 2000
    assert settings.test_mode is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("PORT", "9999")
    monkeypatch.setenv("CORRECTOR_TEST", "1")
    monkeypatch.setenv("TOKEN_RATE_MAX", "5")
    settings = load_settings(_env_file=None)
    assert settings.port == 9999
    assert settings.test_mode is True
    assert settings.token_rate_max == 5


def test_missing_api_key_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(_env_file=None)
    assert "OPENAI_API_KEY" in str(excinfo.value)


def test_empty_api_key_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        load_settings(openai_api_key="")


def test_create_app_without_settings_validates_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir("/")
    with pytest.raises(ConfigurationError):
        create_app()


def test_run_exits_when_api_key_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir("/")
    with pytest.raises(SystemExit) as excinfo:
        run()
    assert excinfo.value.code == 1
