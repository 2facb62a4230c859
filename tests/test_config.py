# tests/test_config.py

import pytest
from pydantic import ValidationError as SettingsError

from dashboard.config import DashboardSettings


def test_defaults() -> None:
    settings = DashboardSettings(_env_file=None)

    assert settings.APP_NAME == "ContraVault"
    assert settings.STORAGE_BACKEND == "memory"
    assert settings.TIMEZONE == "UTC"
    assert settings.POMODORO_WORK_MINUTES == 25
    assert settings.API_TOKENS == {}
    assert settings.log_file.name == "contravault.log"


def test_values_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_TOKENS", "tok-a:alice, tok-b:bob")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000,https://app.example.com")
    monkeypatch.setenv("STORAGE_BACKEND", "JSON")
    monkeypatch.setenv("TIMEZONE", "Europe/Moscow")

    settings = DashboardSettings(_env_file=None)

    assert settings.API_TOKENS == {"tok-a": "alice", "tok-b": "bob"}
    assert settings.ALLOWED_ORIGINS == ["http://localhost:3000", "https://app.example.com"]
    assert settings.STORAGE_BACKEND == "json"
    assert settings.TIMEZONE == "Europe/Moscow"


def test_production_disables_debug_and_user_header() -> None:
    settings = DashboardSettings(_env_file=None, ENVIRONMENT="PRODUCTION", DEBUG=True, TRUST_USER_HEADER=True)

    assert settings.is_production
    assert settings.DEBUG is False
    assert settings.TRUST_USER_HEADER is False


@pytest.mark.parametrize("overrides", [
    {"TIMEZONE": "Mars/Olympus"},
    {"STORAGE_BACKEND": "redis"},
    {"ENVIRONMENT": "qa"},
    {"PORT": 70000},
    {"POMODORO_BREAK_MINUTES": 0},
    {"API_TOKENS": "no-separator"},
])
def test_invalid_settings_are_rejected(overrides) -> None:
    with pytest.raises(SettingsError):
        DashboardSettings(_env_file=None, **overrides)
