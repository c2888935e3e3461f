from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from health_hub.config import config as config_module
from health_hub.config import Settings, get_env


def _isolated(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults(monkeypatch):
    for name in (
        "HUB_CACHE_TTL_SECONDS",
        "HUB_AUTO_REFRESH_SECONDS",
        "HUB_PROVIDER_TIMEOUT_SECONDS",
        "HUB_EXPORT_PATH",
        "HUB_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = _isolated()

    assert settings.cache_ttl == timedelta(minutes=5)
    assert settings.auto_refresh_interval == timedelta(minutes=5)
    assert settings.provider_timeout == 30.0
    assert settings.HUB_EXPORT_PATH is None
    assert settings.HUB_LOG_LEVEL == "INFO"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("HUB_CACHE_TTL_SECONDS", "45")
    monkeypatch.setenv("HUB_EXPORT_PATH", str(tmp_path / "export.json"))
    monkeypatch.delenv("HUB_LOG_LEVEL", raising=False)
    monkeypatch.setenv("hub_log_level", "debug")

    settings = _isolated()

    assert settings.cache_ttl == timedelta(seconds=45)
    assert settings.HUB_EXPORT_PATH == tmp_path / "export.json"
    assert settings.HUB_LOG_LEVEL == "DEBUG"


@pytest.mark.parametrize(
    "field", ["HUB_CACHE_TTL_SECONDS", "HUB_AUTO_REFRESH_SECONDS", "HUB_PROVIDER_TIMEOUT_SECONDS"]
)
def test_non_positive_durations_rejected(field):
    with pytest.raises(ValidationError):
        _isolated(**{field: 0})


def test_log_path_uses_configured_directory(tmp_path):
    settings = _isolated(HUB_LOG_DIR=tmp_path / "logs")

    assert settings.log_path == tmp_path / "logs" / "health_hub.log"
    assert (tmp_path / "logs").is_dir()


def test_log_path_falls_back_to_home(monkeypatch, tmp_path):
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    settings = _isolated(HUB_LOG_DIR=None)

    assert settings.log_path == tmp_path / ".health_hub" / "logs" / "health_hub.log"


def test_get_env_prefers_environment_and_coerces(monkeypatch):
    monkeypatch.setenv("HUB_LOG_TO_CONSOLE", "no")
    monkeypatch.setenv("HUB_PROVIDER_TIMEOUT_SECONDS", "12.5")

    assert get_env("HUB_LOG_TO_CONSOLE") is False
    assert get_env("HUB_PROVIDER_TIMEOUT_SECONDS") == 12.5
    assert get_env("HUB_PROVIDER_TIMEOUT_SECONDS", parser=lambda raw: raw.upper()) == "12.5"


def test_get_env_falls_back_to_settings_then_default(monkeypatch):
    monkeypatch.delenv("HUB_UNKNOWN_SETTING", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    assert get_env("ENVIRONMENT") == config_module.settings.ENVIRONMENT
    assert get_env("HUB_UNKNOWN_SETTING", default="fallback") == "fallback"
