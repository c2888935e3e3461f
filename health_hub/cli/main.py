"""
Command-line interface for the health hub.

Drives a hub against a JSON daily export so the sync path (initial load,
auto-refresh and stream publication) can be exercised from a terminal.
"""
from __future__ import annotations

import asyncio
import json as jsonlib
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from typer import Option
from typing_extensions import Annotated

from health_hub.application.exceptions import HubConfigurationError, HubError
from health_hub.application.hub import HealthDataHub
from health_hub.cli.status import render_results, run_status_checks
from health_hub.config import settings
from health_hub.domain.provider import HealthProvider
from health_hub.domain.records import Snapshot
from health_hub.infrastructure import log_utils
from health_hub.infrastructure.di_container import Container, build_container
from health_hub.infrastructure.json_export_provider import JsonExportHealthProvider
from health_hub.infrastructure.timeout_provider import TimeoutHealthProvider

console = Console()

app = typer.Typer(
    name="health-hub",
    help="CLI for the health data hub: load, watch and check today's health metrics.",
    add_completion=False,
)

ExportOption = Annotated[
    Optional[Path],
    Option("--export", "-e", help="Path to a JSON health export (defaults to HUB_EXPORT_PATH)."),
]


def _build_container(export: Optional[Path]) -> Container:
    overrides = {}
    if export is not None:
        overrides[HealthProvider] = TimeoutHealthProvider(
            JsonExportHealthProvider(export),
            timeout=settings.provider_timeout,
        )
    return build_container(overrides)


def _resolve(export: Optional[Path], service):
    try:
        return _build_container(export).resolve(service)
    except HubConfigurationError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=2)


def _metrics_table(hub: HealthDataHub) -> Table:
    table = Table(title="Today's health data")
    table.add_column("Metric")
    table.add_column("Value", justify="right")

    def _optional(value: Optional[int]) -> str:
        return "n/a" if value is None else f"{value} bpm"

    table.add_row("Steps", str(hub.steps))
    table.add_row("Calories", f"{hub.calories:.1f} kcal")
    table.add_row("Workouts", str(hub.workout_count))
    table.add_row("Workout calories", f"{hub.workout_calories:.1f} kcal")
    table.add_row("Workout time", f"{hub.total_workout_minutes} min")
    table.add_row("Heart rate (avg)", _optional(hub.average_heart_rate))
    table.add_row("Heart rate (min)", _optional(hub.min_heart_rate))
    table.add_row("Heart rate (max)", _optional(hub.max_heart_rate))
    return table


def _workouts_table(hub: HealthDataHub) -> Table:
    table = Table(title="Workouts")
    table.add_column("Start")
    table.add_column("Type")
    table.add_column("Minutes", justify="right")
    table.add_column("Calories", justify="right")
    for workout in hub.workouts:
        table.add_row(
            workout.start.strftime("%H:%M"),
            workout.activity_type,
            str(workout.duration_minutes),
            f"{workout.calories:.1f}",
        )
    return table


def _snapshot_line(snapshot: Snapshot) -> str:
    return (
        f"[{snapshot.captured_at.strftime('%H:%M:%S')}] steps={snapshot.steps} "
        f"calories={snapshot.calories:.1f} workouts={len(snapshot.workouts)} "
        f"hr_samples={len(snapshot.heart_rate)}"
    )


@app.command()
def snapshot(
    export: ExportOption = None,
    as_json: Annotated[bool, Option("--json", help="Print the snapshot as JSON.")] = False,
) -> None:
    """
    Load today's snapshot once and print it with its derived metrics.
    """
    hub: HealthDataHub = _resolve(export, HealthDataHub)
    try:
        asyncio.run(hub.initialize(auto_refresh=False))
    except HubError as exc:
        log_utils.log_message(f"Snapshot command failed: {exc}", "ERROR")
        typer.echo(f"Failed to load health data: {exc}")
        raise typer.Exit(code=1)
    finally:
        hub.dispose()

    if as_json:
        payload = hub.snapshot.to_dict() if hub.snapshot else {}
        payload["metrics"] = {
            "workout_count": hub.workout_count,
            "workout_calories": hub.workout_calories,
            "total_workout_minutes": hub.total_workout_minutes,
            "average_heart_rate": hub.average_heart_rate,
            "min_heart_rate": hub.min_heart_rate,
            "max_heart_rate": hub.max_heart_rate,
        }
        typer.echo(jsonlib.dumps(payload, indent=2))
        return

    console.print(_metrics_table(hub))
    if hub.workout_count:
        console.print(_workouts_table(hub))


async def _watch(hub: HealthDataHub, interval: float, updates: int) -> int:
    subscription = hub.snapshots.subscribe()
    received = 0
    try:
        await hub.initialize(auto_refresh=True)
        hub.set_auto_refresh_interval(interval)
        async for published in subscription:
            if published is None:
                continue
            received += 1
            console.print(_snapshot_line(published))
            if received >= updates:
                break
    finally:
        subscription.cancel()
        hub.dispose()
    return received


@app.command()
def watch(
    export: ExportOption = None,
    interval: Annotated[float, Option(help="Seconds between automatic refreshes.", min=0.1)] = 60.0,
    updates: Annotated[int, Option(help="Stop after this many published snapshots.", min=1)] = 5,
) -> None:
    """
    Run the hub with auto-refresh and print every snapshot it publishes.
    """
    hub: HealthDataHub = _resolve(export, HealthDataHub)
    try:
        received = asyncio.run(_watch(hub, interval, updates))
    except HubError as exc:
        log_utils.log_message(f"Watch command failed: {exc}", "ERROR")
        typer.echo(f"Failed to start the hub: {exc}")
        raise typer.Exit(code=1)
    typer.echo(f"Received {received} update(s).")


@app.command()
def status(export: ExportOption = None) -> None:
    """
    Check that the provider is reachable and readable.
    """
    provider: HealthProvider = _resolve(export, HealthProvider)
    results = asyncio.run(run_status_checks(provider))
    typer.echo(render_results(results))
    if not all(result.ok for result in results):
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
