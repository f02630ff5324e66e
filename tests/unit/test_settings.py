"""
Unit tests for settings.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

import pytest

from src.api import api_config as api_config_module
from src.common import settings as settings_module


def test_load_settings_success() -> None:
    settings_module.get_settings.cache_clear()
    settings = settings_module.get_settings()
    assert settings.PROJECT_NAME
    assert settings.DATABASE_URL.startswith("postgresql")
    assert settings.DB_POOL_SIZE > 0


def test_load_settings_missing_required(monkeypatch: pytest.MonkeyPatch) -> None:
    settings_module.get_settings.cache_clear()
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="Missing required environment variables: DATABASE_URL"):
        settings_module.load_settings(load_env=False)


def test_api_config_reads_dashboard_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AUTO_EXCLUDE_EMAIL_DOMAINS", raising=False)
    monkeypatch.setenv("GOV_NON_GOV_TARGET", "250")
    monkeypatch.setenv("API_PREFIX", "/api/")

    config = api_config_module.load_api_config(load_env=False)

    assert config.api_prefix == "/api"
    assert config.default_page_size == 50
    assert config.event_page_size == 10
    assert config.activation_target == 250
    assert config.auto_exclude_email_domains == ["mailinator.com"]


def test_api_config_rejects_boolean_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_SSL", "sometimes")
    with pytest.raises(ValueError, match="DATABASE_SSL must be boolean-like"):
        api_config_module.load_api_config(load_env=False)
