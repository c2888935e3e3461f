"""Hub configuration decoupled from infrastructure settings."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any

DEFAULT_CACHE_TTL = timedelta(minutes=5)
DEFAULT_AUTO_REFRESH_INTERVAL = timedelta(minutes=5)


@dataclass(frozen=True)
class HubConfig:
    """Runtime tunables consumed by the cache and the hub."""

    cache_ttl: timedelta = DEFAULT_CACHE_TTL
    auto_refresh_interval: timedelta = DEFAULT_AUTO_REFRESH_INTERVAL

    def __post_init__(self) -> None:
        if self.cache_ttl <= timedelta(0):
            raise ValueError("cache_ttl must be positive")
        if self.auto_refresh_interval <= timedelta(0):
            raise ValueError("auto_refresh_interval must be positive")

    @classmethod
    def from_settings(cls, settings: Any, /, **overrides: object) -> "HubConfig":
        """Build a config from the application ``Settings`` object.

        Keyword overrides replace individual fields, which tests use to shrink
        the durations.
        """

        config = cls(
            cache_ttl=settings.cache_ttl,
            auto_refresh_interval=settings.auto_refresh_interval,
        )
        if overrides:
            config = replace(config, **overrides)
        return config


__all__ = ["HubConfig", "DEFAULT_CACHE_TTL", "DEFAULT_AUTO_REFRESH_INTERVAL"]
