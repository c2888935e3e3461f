"""Domain records representing workouts and daily health snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable

UNKNOWN_ACTIVITY = "Unknown"


def local_now() -> datetime:
    """Timezone-aware current local time."""

    return datetime.now().astimezone()


@dataclass(frozen=True)
class WorkoutRecord:
    """Single workout session reported by the provider."""

    start: datetime
    end: datetime
    activity_type: str = UNKNOWN_ACTIVITY
    calories: float = 0.0

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"Workout end {self.end.isoformat()} precedes start {self.start.isoformat()}"
            )
        if self.calories < 0:
            raise ValueError(f"Workout calories must be non-negative, got {self.calories}")
        object.__setattr__(self, "calories", float(self.calories))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        """Whole minutes spent in the session."""

        return int(self.duration.total_seconds() // 60)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "type": self.activity_type,
            "calories": self.calories,
            "duration_minutes": self.duration_minutes,
        }


@dataclass(frozen=True)
class Snapshot:
    """Immutable aggregate of one day's health metrics.

    ``workouts`` is expected most-recent-start first; the ordering is applied
    once when the snapshot is assembled and is never re-sorted here.
    ``heart_rate`` keeps the provider's sample order, duplicates included.
    """

    steps: int = 0
    calories: float = 0.0
    workouts: tuple[WorkoutRecord, ...] = ()
    heart_rate: tuple[int, ...] = ()
    captured_at: datetime = field(default_factory=local_now)

    def __post_init__(self) -> None:
        if self.steps < 0:
            raise ValueError(f"Step count must be non-negative, got {self.steps}")
        if self.calories < 0:
            raise ValueError(f"Calories must be non-negative, got {self.calories}")
        object.__setattr__(self, "steps", int(self.steps))
        object.__setattr__(self, "calories", float(self.calories))
        object.__setattr__(self, "workouts", tuple(self.workouts))
        object.__setattr__(self, "heart_rate", tuple(int(v) for v in self.heart_rate))

    @classmethod
    def empty(cls, captured_at: datetime | None = None) -> "Snapshot":
        """Fallback snapshot used when the provider cannot be read."""

        return cls(captured_at=captured_at or local_now())

    @classmethod
    def assemble(
        cls,
        *,
        steps: int,
        calories: float,
        workouts: Iterable[WorkoutRecord],
        heart_rate: Iterable[int],
        captured_at: datetime | None = None,
    ) -> "Snapshot":
        """Build a snapshot, ordering workouts by start time, newest first."""

        ordered = sorted(workouts, key=lambda w: w.start, reverse=True)
        return cls(
            steps=steps,
            calories=calories,
            workouts=tuple(ordered),
            heart_rate=tuple(heart_rate),
            captured_at=captured_at or local_now(),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.steps or self.calories or self.workouts or self.heart_rate)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps": self.steps,
            "calories": self.calories,
            "workouts": [w.to_dict() for w in self.workouts],
            "heart_rate": list(self.heart_rate),
            "captured_at": self.captured_at.isoformat(),
        }


__all__ = ["Snapshot", "WorkoutRecord", "UNKNOWN_ACTIVITY", "local_now"]
