from datetime import datetime, timedelta, timezone

import pytest

from health_hub.domain import metrics
from health_hub.domain.records import Snapshot, WorkoutRecord

T0 = datetime(2025, 1, 15, 6, 0, tzinfo=timezone.utc)


class _Reader(metrics.SnapshotReader):
    def __init__(self, snapshot):
        self._snapshot = snapshot

    @property
    def snapshot(self):
        return self._snapshot


@pytest.mark.parametrize(
    "samples, expected",
    [
        ([60, 72, 81], (71, 60, 81)),
        ([], (None, None, None)),
        ([70, 71], (70, 70, 71)),
        ([55], (55, 55, 55)),
    ],
)
def test_heart_rate_statistics(samples, expected):
    assert (
        metrics.average_heart_rate(samples),
        metrics.min_heart_rate(samples),
        metrics.max_heart_rate(samples),
    ) == expected


def test_workout_aggregates():
    workouts = [
        WorkoutRecord(start=T0, end=T0 + timedelta(minutes=30, seconds=40), calories=200),
        WorkoutRecord(start=T0, end=T0 + timedelta(minutes=15), calories=99.5),
    ]

    assert metrics.workout_calories(workouts) == pytest.approx(299.5)
    assert metrics.total_workout_minutes(workouts) == 45
    assert metrics.workout_calories([]) == 0.0
    assert metrics.total_workout_minutes([]) == 0


def test_reader_without_snapshot_falls_back_to_zero():
    reader = _Reader(None)

    assert not reader.has_data
    assert reader.steps == 0
    assert reader.calories == 0.0
    assert reader.workouts == ()
    assert reader.workout_count == 0
    assert reader.average_heart_rate is None
    assert reader.max_heart_rate is None


def test_reader_exposes_snapshot_values():
    snapshot = Snapshot(
        steps=8421,
        calories=512.3,
        workouts=(WorkoutRecord(start=T0, end=T0 + timedelta(minutes=20), calories=150),),
        heart_rate=(60, 72, 81),
    )
    reader = _Reader(snapshot)

    assert reader.has_data
    assert reader.steps == 8421
    assert reader.calories == pytest.approx(512.3)
    assert reader.workout_count == 1
    assert reader.workout_calories == 150.0
    assert reader.total_workout_minutes == 20
    assert reader.average_heart_rate == 71
    assert reader.min_heart_rate == 60
    assert reader.max_heart_rate == 81
