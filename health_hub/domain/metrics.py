"""Derived metrics computed on demand from a snapshot."""

from __future__ import annotations

from typing import Optional, Sequence

from health_hub.domain.records import Snapshot, WorkoutRecord


def workout_calories(workouts: Sequence[WorkoutRecord]) -> float:
    return sum((w.calories for w in workouts), 0.0)


def total_workout_minutes(workouts: Sequence[WorkoutRecord]) -> int:
    return sum(w.duration_minutes for w in workouts)


def average_heart_rate(samples: Sequence[int]) -> Optional[int]:
    """Floor of the mean sample, ``None`` when there are no samples."""

    if not samples:
        return None
    return sum(samples) // len(samples)


def min_heart_rate(samples: Sequence[int]) -> Optional[int]:
    if not samples:
        return None
    return min(samples)


def max_heart_rate(samples: Sequence[int]) -> Optional[int]:
    if not samples:
        return None
    return max(samples)


class SnapshotReader:
    """Read-only metric accessors over whatever ``snapshot`` a subclass holds.

    Values fall back to zero or empty when no snapshot is held; heart-rate
    statistics stay ``None`` rather than reporting a sentinel zero.
    """

    @property
    def snapshot(self) -> Optional[Snapshot]:  # pragma: no cover - overridden
        raise NotImplementedError

    @property
    def has_data(self) -> bool:
        return self.snapshot is not None

    @property
    def steps(self) -> int:
        snapshot = self.snapshot
        return snapshot.steps if snapshot else 0

    @property
    def calories(self) -> float:
        snapshot = self.snapshot
        return snapshot.calories if snapshot else 0.0

    @property
    def workouts(self) -> tuple[WorkoutRecord, ...]:
        snapshot = self.snapshot
        return snapshot.workouts if snapshot else ()

    @property
    def heart_rate(self) -> tuple[int, ...]:
        snapshot = self.snapshot
        return snapshot.heart_rate if snapshot else ()

    @property
    def workout_count(self) -> int:
        return len(self.workouts)

    @property
    def workout_calories(self) -> float:
        return workout_calories(self.workouts)

    @property
    def total_workout_minutes(self) -> int:
        return total_workout_minutes(self.workouts)

    @property
    def average_heart_rate(self) -> Optional[int]:
        return average_heart_rate(self.heart_rate)

    @property
    def min_heart_rate(self) -> Optional[int]:
        return min_heart_rate(self.heart_rate)

    @property
    def max_heart_rate(self) -> Optional[int]:
        return max_heart_rate(self.heart_rate)


__all__ = [
    "SnapshotReader",
    "average_heart_rate",
    "max_heart_rate",
    "min_heart_rate",
    "total_workout_minutes",
    "workout_calories",
]
