from datetime import datetime, timedelta, timezone

import pytest

from health_hub.domain.records import UNKNOWN_ACTIVITY, Snapshot, WorkoutRecord

T0 = datetime(2025, 1, 15, 6, 0, tzinfo=timezone.utc)


def _workout(start_hour: int, minutes: int = 30, **kwargs) -> WorkoutRecord:
    start = T0.replace(hour=start_hour)
    return WorkoutRecord(start=start, end=start + timedelta(minutes=minutes), **kwargs)


def test_workout_defaults_and_duration():
    workout = WorkoutRecord(start=T0, end=T0 + timedelta(minutes=45, seconds=59))

    assert workout.activity_type == UNKNOWN_ACTIVITY
    assert workout.calories == 0.0
    assert workout.duration == timedelta(minutes=45, seconds=59)
    assert workout.duration_minutes == 45


def test_workout_rejects_end_before_start():
    with pytest.raises(ValueError):
        WorkoutRecord(start=T0, end=T0 - timedelta(seconds=1))


def test_workout_rejects_negative_calories():
    with pytest.raises(ValueError):
        WorkoutRecord(start=T0, end=T0, calories=-1)


def test_zero_length_workout_is_allowed():
    assert WorkoutRecord(start=T0, end=T0).duration_minutes == 0


def test_snapshot_is_immutable():
    snapshot = Snapshot(steps=10)
    with pytest.raises(AttributeError):
        snapshot.steps = 20  # type: ignore[misc]


def test_snapshot_rejects_negative_totals():
    with pytest.raises(ValueError):
        Snapshot(steps=-1)
    with pytest.raises(ValueError):
        Snapshot(calories=-0.5)


def test_empty_snapshot_has_zero_values():
    snapshot = Snapshot.empty(T0)

    assert snapshot.steps == 0
    assert snapshot.calories == 0.0
    assert snapshot.workouts == ()
    assert snapshot.heart_rate == ()
    assert snapshot.captured_at == T0
    assert snapshot.is_empty


def test_assemble_orders_workouts_newest_first():
    first, second, third = _workout(7), _workout(12), _workout(18)

    snapshot = Snapshot.assemble(
        steps=100,
        calories=50.0,
        workouts=[second, first, third],
        heart_rate=[70, 70, 65],
        captured_at=T0,
    )

    assert snapshot.workouts == (third, second, first)
    assert snapshot.heart_rate == (70, 70, 65)
    assert not snapshot.is_empty


def test_snapshot_to_dict_is_json_friendly():
    snapshot = Snapshot.assemble(
        steps=5,
        calories=1.5,
        workouts=[_workout(9, activity_type="Yoga", calories=80)],
        heart_rate=[61],
        captured_at=T0,
    )

    payload = snapshot.to_dict()

    assert payload["steps"] == 5
    assert payload["captured_at"] == T0.isoformat()
    assert payload["workouts"][0]["type"] == "Yoga"
    assert payload["workouts"][0]["duration_minutes"] == 30
    assert payload["heart_rate"] == [61]
