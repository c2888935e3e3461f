"""
Centralised config for the health hub.

This module consolidates the hub's tunables, loading overrides from environment
variables (or an optional ``.env`` file) and providing typed, validated access
to them through a singleton `settings` object.
"""

import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE = Path(__file__).resolve()


def _discover_project_root(config_file: Path) -> tuple[Path, Path]:
    """Return a project root and env file path without assuming ``.env`` exists.

    Deployments may keep a ``.env`` file next to the checkout, but it is absent
    in development and CI. Walk the parents looking for one and fall back to
    the repository root (detected via common project markers) when missing.
    """

    parents = list(config_file.parents)

    for parent in parents:
        env_file = parent / ".env"
        if env_file.exists():
            return parent, env_file

    for marker in ("pyproject.toml", ".git"):
        for parent in parents:
            if (parent / marker).exists():
                return parent, parent / ".env"

    fallback_root = parents[1] if len(parents) > 1 else parents[0]
    return fallback_root, fallback_root / ".env"


PROJECT_ROOT, ENV_FILE_PATH = _discover_project_root(CONFIG_FILE)


T = TypeVar("T")


class Settings(BaseSettings):
    """
    Centralised and validated hub settings.
    """
    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH, env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )

    # --- CORE APP SETTINGS ---
    ENVIRONMENT: str = "development"

    # --- HUB TUNABLES ---
    HUB_CACHE_TTL_SECONDS: float = Field(300.0, gt=0)
    HUB_AUTO_REFRESH_SECONDS: float = Field(300.0, gt=0)

    # --- PROVIDER ADAPTERS ---
    HUB_PROVIDER_TIMEOUT_SECONDS: float = Field(30.0, gt=0)
    HUB_EXPORT_PATH: Optional[Path] = None

    # --- LOGGING ---
    HUB_LOG_LEVEL: str = "INFO"
    HUB_LOG_TO_CONSOLE: bool = True
    HUB_LOG_DIR: Optional[Path] = None
    HUB_LOG_MAX_BYTES: int = Field(5 * 1024 * 1024, gt=0)
    HUB_LOG_BACKUP_COUNT: int = Field(7, ge=0)

    @field_validator("HUB_LOG_LEVEL")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        return str(value).strip().upper() or "INFO"

    # --- DERIVED VALUES ---
    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.HUB_CACHE_TTL_SECONDS)

    @property
    def auto_refresh_interval(self) -> timedelta:
        return timedelta(seconds=self.HUB_AUTO_REFRESH_SECONDS)

    @property
    def provider_timeout(self) -> float:
        return float(self.HUB_PROVIDER_TIMEOUT_SECONDS)

    @property
    def log_path(self) -> Path:
        """
        Path for the hub's log file.

        Uses ``HUB_LOG_DIR`` when it is set and writable, otherwise falls back
        to a directory in the user's home. Never raises.
        """
        try:
            if self.HUB_LOG_DIR is None:
                raise PermissionError("HUB_LOG_DIR not configured")
            log_dir = Path(self.HUB_LOG_DIR)
            log_dir.mkdir(parents=True, exist_ok=True)
            if not os.access(log_dir, os.W_OK):
                raise PermissionError(f"No write access to {log_dir}")
            return log_dir / "health_hub.log"
        except Exception:
            fallback_dir = Path.home() / ".health_hub" / "logs"
            fallback_dir.mkdir(parents=True, exist_ok=True)
            return fallback_dir / "health_hub.log"


# Create a single, importable instance of the settings for the entire application.
settings = Settings()


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _coerce_type(raw: str, template: Any) -> Any:
    if isinstance(template, bool):
        return _to_bool(raw)
    if isinstance(template, int) and not isinstance(template, bool):
        return int(raw)
    if isinstance(template, float):
        return float(raw)
    if isinstance(template, Path):
        return Path(raw)
    return raw


def get_env(
    name: str,
    default: T | None = None,
    *,
    parser: Callable[[str], T] | None = None,
) -> T | Any | None:
    """Return a configuration value resolving environment overrides consistently.

    The resolution order is:

    1. Explicit environment variable overrides at runtime.
    2. Typed values provided by the Pydantic ``settings`` object.
    3. The supplied ``default`` value.

    When an override is read directly from :mod:`os.environ`, ``parser`` (or the
    inferred type from ``settings``) is used to coerce the string into the
    expected type.
    """

    if name in os.environ:
        raw_value = os.environ[name]
        if parser is not None:
            return parser(raw_value)
        if hasattr(settings, name):
            template = getattr(settings, name)
            try:
                return _coerce_type(raw_value, template)
            except (TypeError, ValueError):
                return template
        return raw_value

    if hasattr(settings, name):
        value = getattr(settings, name)
        return default if value is None and default is not None else value

    return default
