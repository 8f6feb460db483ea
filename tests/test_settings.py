from __future__ import annotations

import pytest

from route_health.settings import CheckerSettings, ConfigError


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELERIVET_API_KEY", " key ")
    monkeypatch.setenv("TELERIVET_PROJECT_ID", "PJ1")
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_PORT", "not-a-port")
    monkeypatch.setenv("DB_SSL", "true")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-1")
    monkeypatch.setenv("SLACK_CHANNEL_ID", "C1")
    settings = CheckerSettings()
    assert settings.api_key == "key"
    assert settings.db_port == 5432
    assert settings.db_ssl is True
    assert settings.store_configured is True
    assert settings.slack_configured is True
    settings.require_gateway_credentials()


def test_defaults_when_environment_is_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "DB_HOST", "DB_SSL", "SLACK_BOT_TOKEN", "ROUTE_MANAGED_FLAG", "TELERIVET_API_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    settings = CheckerSettings()
    assert settings.api_base_url == "https://api.telerivet.com/v1"
    assert settings.managed_flag == "dsl_managed"
    assert settings.db_ssl is False
    assert settings.store_configured is False
    assert settings.slack_configured is False


def test_missing_gateway_credentials_are_reported() -> None:
    with pytest.raises(ConfigError) as excinfo:
        CheckerSettings(api_key="", project_id="").require_gateway_credentials()
    assert "TELERIVET_API_KEY" in str(excinfo.value)
    assert "TELERIVET_PROJECT_ID" in str(excinfo.value)

    with pytest.raises(ConfigError) as excinfo:
        CheckerSettings(api_key="k", project_id="").require_gateway_credentials()
    assert "TELERIVET_API_KEY" not in str(excinfo.value)
