import json
from datetime import datetime

import pytest
from typer.testing import CliRunner

import health_hub.cli.main as cli_main
from health_hub.application import repository
from health_hub.cli.main import app
from health_hub.cli.status import CheckResult, render_results, run_status_checks
from health_hub.config import Settings
from health_hub.infrastructure import di_container
from tests.fake_provider import FakeHealthProvider

runner = CliRunner()


@pytest.fixture
def export_file(tmp_path):
    path = tmp_path / "export.json"
    path.write_text(
        json.dumps(
            {
                "steps": [{"time": "2025-01-15T08:00:00", "count": 8421}],
                "calories": [{"time": "2025-01-15T08:00:00", "kcal": 512.5}],
                "workouts": [
                    {"startTime": "2025-01-15T07:00:00", "endTime": "2025-01-15T07:30:00", "type": "Rowing", "calories": 220}
                ],
                "heartRate": [
                    {"time": "2025-01-15T08:00:00", "bpm": 60},
                    {"time": "2025-01-15T08:01:00", "bpm": 72},
                    {"time": "2025-01-15T08:02:00", "bpm": 81},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def fixed_day(monkeypatch):
    """Pin "today" to the export's day."""
    monkeypatch.setattr(repository, "local_now", lambda: datetime(2025, 1, 15, 12, 0).astimezone())


def test_snapshot_prints_metrics(export_file):
    result = runner.invoke(app, ["snapshot", "--export", str(export_file)])

    assert result.exit_code == 0, result.stdout
    assert "8421" in result.stdout
    assert "Rowing" in result.stdout
    assert "71 bpm" in result.stdout


def test_snapshot_json_output(export_file):
    result = runner.invoke(app, ["snapshot", "--export", str(export_file), "--json"])

    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["steps"] == 8421
    assert payload["calories"] == 512.5
    assert payload["workouts"][0]["type"] == "Rowing"
    assert payload["metrics"]["average_heart_rate"] == 71
    assert payload["metrics"]["total_workout_minutes"] == 30


def test_snapshot_exits_nonzero_when_permissions_missing(tmp_path):
    path = tmp_path / "export.json"
    path.write_text(json.dumps({"granted": False}), encoding="utf-8")

    result = runner.invoke(app, ["snapshot", "--export", str(path)])

    assert result.exit_code == 1
    assert "Failed to load health data" in result.stdout
    assert "permissions not granted" in result.stdout


def test_snapshot_without_export_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(di_container, "app_settings", Settings(_env_file=None, HUB_EXPORT_PATH=None))

    result = runner.invoke(app, ["snapshot"])

    assert result.exit_code == 2
    assert "HUB_EXPORT_PATH" in result.stdout


def test_watch_stops_after_requested_updates(export_file):
    result = runner.invoke(
        app,
        ["watch", "--export", str(export_file), "--interval", "0.1", "--updates", "2"],
    )

    assert result.exit_code == 0, result.stdout
    assert result.stdout.count("steps=8421") == 2
    assert "Received 2 update(s)." in result.stdout


def test_watch_exits_nonzero_when_export_missing(tmp_path):
    result = runner.invoke(app, ["watch", "--export", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "not available" in result.stdout


def test_status_cli_all_ok(export_file):
    result = runner.invoke(app, ["status", "--export", str(export_file)])

    assert result.exit_code == 0
    assert "Provider" in result.stdout
    assert "Access" in result.stdout
    assert "FAIL" not in result.stdout


def test_status_cli_failure_propagates(monkeypatch, export_file):
    async def fake_checks(provider, *, checks=None):
        return [
            CheckResult("Provider", True, "1ms"),
            CheckResult("Access", False, "permissions not granted"),
        ]

    monkeypatch.setattr(cli_main, "run_status_checks", fake_checks)

    result = runner.invoke(app, ["status", "--export", str(export_file)])

    assert result.exit_code == 1
    assert "FAIL" in result.stdout
    assert "permissions not granted" in result.stdout


@pytest.mark.asyncio
async def test_run_status_checks_reports_provider_errors():
    provider = FakeHealthProvider(granted=False)
    provider.fail("is_available", RuntimeError("bridge offline\nstack"))

    results = await run_status_checks(provider)

    assert [(r.name, r.ok, r.detail) for r in results] == [
        ("Provider", False, "bridge offline"),
        ("Access", False, "permissions not granted"),
    ]
    assert render_results(results).splitlines()[0].split() == ["Provider", "FAIL", "bridge", "offline"]
