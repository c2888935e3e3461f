"""Custom exception hierarchy for health hub orchestration."""

from __future__ import annotations


class HubError(Exception):
    """Base exception for hub failures surfaced to callers."""


class ProviderUnavailableError(HubError):
    """Raised when the health backend cannot be reached."""


class PermissionDeniedError(HubError):
    """Raised when the required data-access scopes are not granted."""


class SnapshotAssemblyError(HubError):
    """Raised when loading fails for any other reason."""


class HubDisposedError(HubError):
    """Raised when a disposed hub is asked to initialize."""


class HubConfigurationError(HubError):
    """Raised when the service container cannot build a collaborator."""


__all__ = [
    "HubError",
    "ProviderUnavailableError",
    "PermissionDeniedError",
    "SnapshotAssemblyError",
    "HubDisposedError",
    "HubConfigurationError",
]
