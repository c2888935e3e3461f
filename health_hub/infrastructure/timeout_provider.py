"""Provider wrapper that bounds every call with a timeout."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Mapping, Sequence, TypeVar

from health_hub.domain.provider import HealthProvider
from health_hub.infrastructure import log_utils

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0


class ProviderTimeoutError(TimeoutError):
    """Raised when a provider call exceeds its time budget."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"Provider call '{operation}' timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class TimeoutHealthProvider(HealthProvider):
    """Delegate to ``inner``, failing any call that runs longer than ``timeout``."""

    def __init__(self, inner: HealthProvider, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        if timeout <= 0:
            raise ValueError("Provider timeout must be positive.")
        self._inner = inner
        self._timeout = float(timeout)

    @property
    def inner(self) -> HealthProvider:
        return self._inner

    @property
    def timeout(self) -> float:
        return self._timeout

    async def _bounded(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, self._timeout)
        except asyncio.TimeoutError as exc:
            log_utils.log_message(
                f"Provider call '{operation}' exceeded {self._timeout:g}s", "WARN"
            )
            raise ProviderTimeoutError(operation, self._timeout) from exc

    async def is_available(self) -> bool:
        return await self._bounded("is_available", self._inner.is_available())

    async def has_permissions(self) -> bool:
        return await self._bounded("has_permissions", self._inner.has_permissions())

    async def request_permissions(self) -> bool:
        return await self._bounded("request_permissions", self._inner.request_permissions())

    async def open_settings(self) -> None:
        await self._bounded("open_settings", self._inner.open_settings())

    async def get_steps(self, start: datetime, end: datetime) -> int:
        return await self._bounded("get_steps", self._inner.get_steps(start, end))

    async def get_calories(self, start: datetime, end: datetime) -> float:
        return await self._bounded("get_calories", self._inner.get_calories(start, end))

    async def get_workouts(self, start: datetime, end: datetime) -> Sequence[Mapping[str, Any]]:
        return await self._bounded("get_workouts", self._inner.get_workouts(start, end))

    async def get_heart_rate(self, start: datetime, end: datetime) -> Sequence[int]:
        return await self._bounded("get_heart_rate", self._inner.get_heart_rate(start, end))


__all__ = ["TimeoutHealthProvider", "ProviderTimeoutError", "DEFAULT_TIMEOUT_SECONDS"]
