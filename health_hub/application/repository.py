"""
Sync engine: reads today's metrics from the provider and assembles snapshots.

The four metric queries are issued concurrently and joined before assembly.
Each query is guarded on its own, so a failing metric degrades to its zero
value without failing the snapshot. Availability and permission problems, or
anything unexpected, abort the load and are reported by value through
:class:`RefreshResult`.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from health_hub.application.snapshot_cache import Clock, SnapshotCache
from health_hub.domain.provider import (
    WORKOUT_CALORIES_KEY,
    WORKOUT_END_KEY,
    WORKOUT_START_KEY,
    WORKOUT_TYPE_KEY,
    HealthProvider,
)
from health_hub.domain.records import UNKNOWN_ACTIVITY, Snapshot, WorkoutRecord, local_now
from health_hub.domain.results import ErrorKind, HubFailure, RefreshResult
from health_hub.infrastructure import log_utils
from health_hub.utils import converters

T = TypeVar("T")

METRIC_STEPS = "steps"
METRIC_CALORIES = "calories"
METRIC_WORKOUTS = "workouts"
METRIC_HEART_RATE = "heart_rate"

PROVIDER_UNAVAILABLE_MESSAGE = "Health provider is not available on this device"
PERMISSION_DENIED_MESSAGE = "Health data permissions not granted"


def day_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Return local midnight and 23:59:59 for the calendar day of ``now``."""

    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(hour=23, minute=59, second=59, microsecond=0)
    return start, end


def _to_workout(payload: Mapping[str, Any]) -> WorkoutRecord:
    start = converters.to_datetime(payload.get(WORKOUT_START_KEY))
    end = converters.to_datetime(payload.get(WORKOUT_END_KEY))
    if start is None or end is None:
        raise ValueError("missing or unparseable start/end time")
    activity_type = payload.get(WORKOUT_TYPE_KEY) or UNKNOWN_ACTIVITY
    calories = converters.to_float(payload.get(WORKOUT_CALORIES_KEY))
    return WorkoutRecord(
        start=start,
        end=end,
        activity_type=str(activity_type),
        calories=calories if calories is not None else 0.0,
    )


def build_workouts(payloads: Iterable[Mapping[str, Any]]) -> List[WorkoutRecord]:
    """Convert raw payloads, skipping (and logging) malformed records."""

    workouts: List[WorkoutRecord] = []
    for index, payload in enumerate(payloads):
        try:
            workouts.append(_to_workout(payload))
        except (AttributeError, TypeError, ValueError) as exc:
            log_utils.log_message(f"Skipping malformed workout record #{index}: {exc}", "WARN")
    return workouts


class HealthRepository:
    """Fetches today's data from a :class:`HealthProvider` and caches the result."""

    def __init__(
        self,
        provider: HealthProvider,
        cache: Optional[SnapshotCache] = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._provider = provider
        self._clock: Clock = clock or local_now
        self._cache = cache if cache is not None else SnapshotCache(clock=self._clock)

    @property
    def provider(self) -> HealthProvider:
        return self._provider

    @property
    def cached_snapshot(self) -> Optional[Snapshot]:
        return self._cache.get()

    def clear_cache(self) -> None:
        self._cache.invalidate()

    # ------------------------------------------------------------------
    # Provider passthroughs
    # ------------------------------------------------------------------
    async def is_available(self) -> bool:
        return await self._provider.is_available()

    async def has_permissions(self) -> bool:
        return await self._provider.has_permissions()

    async def request_permissions(self) -> bool:
        return await self._provider.request_permissions()

    async def open_settings(self) -> None:
        await self._provider.open_settings()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def refresh_all(self) -> Snapshot:
        """Fetch fresh data for today, falling back to an empty snapshot.

        The cache is written on success but never consulted.
        """

        result = await self.load()
        if result.snapshot is None:
            return Snapshot.empty(self._clock())
        return result.snapshot

    async def load(self, *, request_permissions: bool = False) -> RefreshResult:
        """Check access, fetch today's data and report the outcome by value.

        When ``request_permissions`` is set, missing permissions are requested
        once before giving up.
        """

        try:
            if not await self._provider.is_available():
                log_utils.log_message(PROVIDER_UNAVAILABLE_MESSAGE, "WARN")
                return RefreshResult.failed(ErrorKind.PROVIDER_UNAVAILABLE, PROVIDER_UNAVAILABLE_MESSAGE)

            if not await self._provider.has_permissions():
                granted = False
                if request_permissions:
                    log_utils.log_message("Requesting health data permissions.", "INFO")
                    granted = await self._provider.request_permissions()
                if not granted:
                    log_utils.log_message(PERMISSION_DENIED_MESSAGE, "WARN")
                    return RefreshResult.failed(ErrorKind.PERMISSION_DENIED, PERMISSION_DENIED_MESSAGE)

            snapshot, metric_failures = await self._fetch_today()
        except Exception as exc:
            log_utils.log_message(f"Error refreshing health data: {exc}", "ERROR")
            return RefreshResult.failed(ErrorKind.UNEXPECTED, f"Health data refresh failed: {exc}")

        return RefreshResult.success(snapshot, metric_failures=metric_failures)

    async def _fetch_today(self) -> Tuple[Snapshot, List[HubFailure]]:
        start, end = day_bounds(self._clock())

        (steps, steps_err), (calories, calories_err), (workouts, workouts_err), (heart_rate, hr_err) = (
            await asyncio.gather(
                self._guarded(METRIC_STEPS, self._fetch_steps(start, end), 0),
                self._guarded(METRIC_CALORIES, self._fetch_calories(start, end), 0.0),
                self._guarded(METRIC_WORKOUTS, self._fetch_workouts(start, end), []),
                self._guarded(METRIC_HEART_RATE, self._fetch_heart_rate(start, end), []),
            )
        )

        metric_failures = [
            failure for failure in (steps_err, calories_err, workouts_err, hr_err) if failure is not None
        ]
        failed_metrics = [failure.metric for failure in metric_failures]

        snapshot = Snapshot.assemble(
            steps=steps,
            calories=calories,
            workouts=workouts,
            heart_rate=heart_rate,
            captured_at=self._clock(),
        )
        self._cache.put(snapshot)

        log_utils.log_message(
            f"Health data refreshed: steps={snapshot.steps}, calories={snapshot.calories:.1f}, "
            f"workouts={len(snapshot.workouts)}, heart_rate_samples={len(snapshot.heart_rate)}"
            + (f", degraded={failed_metrics}" if failed_metrics else ""),
            "INFO",
        )
        return snapshot, metric_failures

    async def _guarded(
        self, metric: str, fetch: Awaitable[T], fallback: T
    ) -> Tuple[T, Optional[HubFailure]]:
        try:
            return await fetch, None
        except Exception as exc:
            log_utils.log_message(f"Error fetching today's {metric}: {exc}", "WARN")
            failure = HubFailure(ErrorKind.FETCH_FAILED, f"Failed to fetch {metric}: {exc}", metric=metric)
            return fallback, failure

    async def _fetch_steps(self, start: datetime, end: datetime) -> int:
        raw = await self._provider.get_steps(start, end)
        steps = converters.to_int(raw)
        if steps is None or steps < 0:
            raise ValueError(f"invalid step count {raw!r}")
        return steps

    async def _fetch_calories(self, start: datetime, end: datetime) -> float:
        raw = await self._provider.get_calories(start, end)
        calories = converters.to_float(raw)
        if calories is None or calories < 0 or calories != calories:
            raise ValueError(f"invalid calorie total {raw!r}")
        return calories

    async def _fetch_workouts(self, start: datetime, end: datetime) -> List[WorkoutRecord]:
        payloads: Sequence[Mapping[str, Any]] = await self._provider.get_workouts(start, end) or []
        return build_workouts(payloads)

    async def _fetch_heart_rate(self, start: datetime, end: datetime) -> List[int]:
        raw = await self._provider.get_heart_rate(start, end) or []
        samples: List[int] = []
        for value in raw:
            sample = converters.to_int(value)
            if sample is None:
                raise ValueError(f"invalid heart-rate sample {value!r}")
            samples.append(sample)
        return samples


__all__ = [
    "HealthRepository",
    "build_workouts",
    "day_bounds",
    "METRIC_STEPS",
    "METRIC_CALORIES",
    "METRIC_WORKOUTS",
    "METRIC_HEART_RATE",
    "PROVIDER_UNAVAILABLE_MESSAGE",
    "PERMISSION_DENIED_MESSAGE",
]
