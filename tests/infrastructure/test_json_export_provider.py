import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from health_hub.application.repository import HealthRepository
from health_hub.infrastructure.json_export_provider import JsonExportHealthProvider

START = datetime(2025, 1, 15, 0, 0, tzinfo=timezone.utc)
END = datetime(2025, 1, 15, 23, 59, 59, tzinfo=timezone.utc)


def _write(tmp_path, document):
    path = tmp_path / "export.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture
def export_document():
    return {
        "available": True,
        "granted": True,
        "steps": [
            {"time": "2025-01-14T23:50:00Z", "count": 999},
            {"time": "2025-01-15T08:00:00Z", "count": 1200},
            {"time": "2025-01-15T18:30:00Z", "count": 3000},
        ],
        "calories": [
            {"time": "2025-01-15T08:00:00Z", "kcal": 85.5},
            {"time": "2025-01-16T00:10:00Z", "kcal": 40},
        ],
        "workouts": [
            {"startTime": "2025-01-15T07:00:00Z", "endTime": "2025-01-15T07:45:00Z", "type": "Running", "calories": 310},
            {"startTime": "2025-01-13T07:00:00Z", "endTime": "2025-01-13T07:30:00Z", "type": "Yoga"},
            {"startTime": "2025-01-14T23:40:00Z", "endTime": "2025-01-15T00:20:00Z", "type": "Walking"},
        ],
        "heartRate": [
            {"time": "2025-01-15T08:00:00Z", "bpm": 64},
            {"time": "2025-01-15T08:05:00Z", "bpm": 90},
            {"time": "2025-01-17T08:05:00Z", "bpm": 120},
        ],
    }


@pytest.mark.asyncio
async def test_range_queries_filter_samples(tmp_path, export_document):
    provider = JsonExportHealthProvider(_write(tmp_path, export_document))

    assert await provider.get_steps(START, END) == 4200
    assert await provider.get_calories(START, END) == pytest.approx(85.5)
    assert await provider.get_heart_rate(START, END) == [64, 90]
    workouts = await provider.get_workouts(START, END)
    assert [w["type"] for w in workouts] == ["Running", "Walking"]


@pytest.mark.asyncio
async def test_flags_default_to_true(tmp_path):
    provider = JsonExportHealthProvider(_write(tmp_path, {}))

    assert await provider.is_available()
    assert await provider.has_permissions()
    assert await provider.get_steps(START, END) == 0
    assert await provider.get_workouts(START, END) == []


@pytest.mark.asyncio
async def test_missing_file_is_unavailable(tmp_path, capture_logs):
    provider = JsonExportHealthProvider(tmp_path / "missing.json")

    assert await provider.is_available() is False
    assert any(level == "WARN" for _, level in capture_logs)


@pytest.mark.asyncio
async def test_request_permissions_reports_export_flag(tmp_path, capture_logs):
    provider = JsonExportHealthProvider(_write(tmp_path, {"granted": False}))

    assert await provider.request_permissions() is False
    assert any("granted" in msg for msg, _ in capture_logs)


@pytest.mark.asyncio
async def test_invalid_section_fails_only_that_query(tmp_path, export_document):
    export_document["calories"] = [{"time": "2025-01-15T08:00:00Z", "kcal": -3}]
    provider = JsonExportHealthProvider(_write(tmp_path, export_document))

    with pytest.raises(ValidationError):
        await provider.get_calories(START, END)
    assert await provider.get_steps(START, END) == 4200


@pytest.mark.asyncio
async def test_edits_are_picked_up_between_calls(tmp_path, export_document):
    path = _write(tmp_path, export_document)
    provider = JsonExportHealthProvider(path)
    assert await provider.get_steps(START, END) == 4200

    export_document["steps"].append({"time": "2025-01-15T20:00:00Z", "count": 800})
    _write(tmp_path, export_document)

    assert await provider.get_steps(START, END) == 5000


@pytest.mark.asyncio
async def test_repository_reads_export_end_to_end(tmp_path, export_document):
    export_document["calories"] = "oops"
    provider = JsonExportHealthProvider(_write(tmp_path, export_document))
    repository = HealthRepository(provider, clock=lambda: datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))

    result = await repository.load()

    assert result.ok
    assert result.failed_metrics == ("calories",)
    snapshot = result.snapshot
    assert snapshot.steps == 4200
    assert [w.activity_type for w in snapshot.workouts] == ["Running", "Walking"]
    assert snapshot.heart_rate == (64, 90)
