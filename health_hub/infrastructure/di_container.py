# health_hub/infrastructure/di_container.py
"""Wiring for the hub's service graph.

:func:`build_container` registers the production graph (settings, provider,
cache, repository, controller, hub) and applies test or embedding overrides.
Every service is built once per container.
"""
from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, Set, Type

from health_hub.application.controller import HealthController
from health_hub.application.exceptions import HubConfigurationError
from health_hub.application.hub import HealthDataHub
from health_hub.application.repository import HealthRepository
from health_hub.application.snapshot_cache import SnapshotCache
from health_hub.config import Settings
from health_hub.config import settings as app_settings
from health_hub.domain.configuration import HubConfig
from health_hub.domain.provider import HealthProvider
from health_hub.infrastructure import log_utils
from health_hub.infrastructure.json_export_provider import JsonExportHealthProvider
from health_hub.infrastructure.timeout_provider import TimeoutHealthProvider

ServiceType = Type[Any]
Factory = Callable[["Container"], Any]


class Container:
    """Lazily builds and memoises one instance per service type."""

    def __init__(self) -> None:
        self._factories: Dict[ServiceType, Factory] = {}
        self._instances: Dict[ServiceType, Any] = {}
        self._resolving: Set[ServiceType] = set()

    def provide(self, service: ServiceType, factory: Factory) -> None:
        self._factories[service] = factory
        self._instances.pop(service, None)

    def override(self, service: ServiceType, replacement: Any) -> None:
        """Swap in ``replacement`` for ``service``.

        Functions and methods are treated as factories taking the container;
        anything else is used as the instance itself.
        """
        if inspect.isfunction(replacement) or inspect.ismethod(replacement):
            self.provide(service, replacement)
        else:
            self._factories.pop(service, None)
            self._instances[service] = replacement

    def resolve(self, service: ServiceType) -> Any:
        if service in self._instances:
            return self._instances[service]
        if service not in self._factories:
            raise KeyError(f"No provider registered for {service!r}")
        if service in self._resolving:
            raise HubConfigurationError(f"Circular dependency while building {service.__name__}")

        self._resolving.add(service)
        try:
            instance = self._factories[service](self)
        finally:
            self._resolving.discard(service)
        self._instances[service] = instance
        return instance


def _build_provider(container: Container) -> HealthProvider:
    config: Settings = container.resolve(Settings)
    if config.HUB_EXPORT_PATH is None:
        raise HubConfigurationError(
            "No health provider configured; set HUB_EXPORT_PATH or override HealthProvider."
        )
    log_utils.log_message(f"Using JSON export provider at {config.HUB_EXPORT_PATH}", "DEBUG")
    return TimeoutHealthProvider(
        JsonExportHealthProvider(config.HUB_EXPORT_PATH),
        timeout=config.provider_timeout,
    )


def _register_defaults(container: Container) -> None:
    container.override(Settings, app_settings)
    container.provide(HubConfig, lambda c: HubConfig.from_settings(c.resolve(Settings)))
    container.provide(HealthProvider, _build_provider)
    container.provide(SnapshotCache, lambda c: SnapshotCache(ttl=c.resolve(HubConfig).cache_ttl))
    container.provide(
        HealthRepository,
        lambda c: HealthRepository(c.resolve(HealthProvider), c.resolve(SnapshotCache)),
    )
    container.provide(HealthController, lambda c: HealthController(c.resolve(HealthRepository)))
    container.provide(
        HealthDataHub,
        lambda c: HealthDataHub(
            c.resolve(HealthRepository),
            controller=c.resolve(HealthController),
            config=c.resolve(HubConfig),
        ),
    )


def build_container(overrides: Dict[ServiceType, Any] | None = None) -> Container:
    """Create a container for the production graph with ``overrides`` applied.

    Resolving :class:`HealthDataHub` twice yields the same hub. Build one
    container per process (or per test) and pass it, or the hub, to consumers
    explicitly.
    """
    container = Container()
    _register_defaults(container)
    for service, replacement in (overrides or {}).items():
        container.override(service, replacement)
    return container


__all__ = ["Container", "build_container"]
