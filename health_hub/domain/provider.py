from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Mapping, Sequence

# Raw workout payload keys understood by the sync engine.
WORKOUT_START_KEY = "startTime"
WORKOUT_END_KEY = "endTime"
WORKOUT_TYPE_KEY = "type"
WORKOUT_CALORIES_KEY = "calories"


class HealthProvider(ABC):
    """Abstract interface for the external health-data backend.

    Every method is a coroutine and may fail independently of the others.
    Implementations are expected to bound their own latency; the hub does not
    retry.
    """

    @abstractmethod
    async def is_available(self) -> bool:
        """Return whether the backend can be reached on this device."""

    @abstractmethod
    async def has_permissions(self) -> bool:
        """Return whether all required read scopes are granted."""

    @abstractmethod
    async def request_permissions(self) -> bool:
        """Ask the user for the read scopes and return whether they were granted."""

    @abstractmethod
    async def open_settings(self) -> None:
        """Open the backend's settings screen."""

    @abstractmethod
    async def get_steps(self, start: datetime, end: datetime) -> int:
        """Return the total step count between ``start`` and ``end``."""

    @abstractmethod
    async def get_calories(self, start: datetime, end: datetime) -> float:
        """Return energy burned (kcal) between ``start`` and ``end``."""

    @abstractmethod
    async def get_workouts(self, start: datetime, end: datetime) -> Sequence[Mapping[str, Any]]:
        """Return raw workout payloads overlapping the range.

        Each payload carries ``startTime`` and ``endTime`` (datetime, epoch
        milliseconds or ISO-8601 text), an optional ``type`` label and optional
        ``calories``.
        """

    @abstractmethod
    async def get_heart_rate(self, start: datetime, end: datetime) -> Sequence[int]:
        """Return heart-rate samples (bpm) in provider order."""


__all__ = [
    "HealthProvider",
    "WORKOUT_START_KEY",
    "WORKOUT_END_KEY",
    "WORKOUT_TYPE_KEY",
    "WORKOUT_CALORIES_KEY",
]
