from __future__ import annotations

import pytest
from pytest import MonkeyPatch

from core.config import Settings

ENV_KEYS = (
    "N8N_API_URL",
    "N8N_API_KEY",
    "N8N_API_PATH",
    "N8N_TIMEOUT",
    "N8N_DISCOVERY_TIMEOUT",
    "N8N_SCAN_DEADLINE",
    "LOG_LEVEL",
    "AUDIT_LOG_PATH",
    "RATE_LIMIT",
    "CACHE_TTL",
)


@pytest.fixture
def clean_env(monkeypatch: MonkeyPatch) -> MonkeyPatch:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("N8N_API_URL", "https://n8n.example.com/")
    monkeypatch.setenv("N8N_API_KEY", "key")
    return monkeypatch


def test_defaults(clean_env: MonkeyPatch) -> None:
    settings = Settings.load_from_env()

    assert settings.n8n_api_url == "https://n8n.example.com"
    assert settings.api_base_url == "https://n8n.example.com/api/v1"
    assert settings.request_timeout == 30.0
    assert settings.discovery_timeout == 10.0
    assert settings.scan_deadline is None
    assert settings.rate_limit_per_minute == 60
    assert settings.cache_ttl_seconds == 3600.0
    assert settings.audit_log_path is None


def test_overrides(clean_env: MonkeyPatch) -> None:
    clean_env.setenv("N8N_API_PATH", "/")
    clean_env.setenv("N8N_TIMEOUT", "5")
    clean_env.setenv("N8N_DISCOVERY_TIMEOUT", "2.5")
    clean_env.setenv("N8N_SCAN_DEADLINE", "20")
    clean_env.setenv("RATE_LIMIT", "5")

    settings = Settings.load_from_env()

    assert settings.api_base_url == "https://n8n.example.com"
    assert settings.request_timeout == 5.0
    assert settings.discovery_timeout == 2.5
    assert settings.scan_deadline == 20.0
    assert settings.rate_limit_per_minute == 5


def test_missing_credentials_raise(clean_env: MonkeyPatch) -> None:
    clean_env.delenv("N8N_API_KEY")
    with pytest.raises(RuntimeError, match="N8N_API_KEY"):
        Settings.load_from_env()


@pytest.mark.parametrize(
    "key,value",
    [("N8N_TIMEOUT", "soon"), ("N8N_TIMEOUT", "0"), ("RATE_LIMIT", "-1"), ("RATE_LIMIT", "1.5")],
)
def test_invalid_numbers_raise(clean_env: MonkeyPatch, key: str, value: str) -> None:
    clean_env.setenv(key, value)
    with pytest.raises(RuntimeError, match=key):
        Settings.load_from_env()


def test_settings_are_immutable() -> None:
    settings = Settings(n8n_api_url="https://n8n.test", n8n_api_key="k")
    with pytest.raises(AttributeError):
        settings.n8n_api_key = "other"  # type: ignore[misc]
