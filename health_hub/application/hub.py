"""
Central data hub for today's health data.

The hub is the single writer of the current snapshot and the many-reader
façade in front of it:

- ``initialize`` verifies access, performs the first load and optionally
  starts the auto-refresh loop; failures are re-raised to the caller.
- ``refresh`` is guarded by the loading flag, so overlapping requests are
  dropped rather than queued; failures are recorded, never raised.
- Every successful load is published on four broadcast channels (full
  snapshot, steps, calories, workouts) in one synchronous dispatch, after the
  snapshot has been assembled and cached.
- ``reset`` returns the hub to idle; ``dispose`` tears it down for good.

Construct one hub per process (or per test) and pass it to consumers
explicitly, e.g. through :func:`health_hub.infrastructure.di_container.build_container`.

Usage::

    hub = HealthDataHub(HealthRepository(provider))
    await hub.initialize()
    updates = hub.snapshots.subscribe()
    await hub.refresh(force=True)
    latest = await updates.next()
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import List, Optional, Set, Union

from health_hub.application.broadcast import BroadcastChannel
from health_hub.application.controller import HealthController, Listener
from health_hub.application.exceptions import HubDisposedError, HubError
from health_hub.application.repository import HealthRepository
from health_hub.application.snapshot_cache import Clock
from health_hub.domain.configuration import HubConfig
from health_hub.domain.metrics import SnapshotReader
from health_hub.domain.records import Snapshot, WorkoutRecord, local_now
from health_hub.domain.results import RefreshResult
from health_hub.domain.state import HubState, HubStatus
from health_hub.infrastructure import log_utils

Interval = Union[timedelta, float, int]


def _to_interval(value: Interval) -> timedelta:
    interval = value if isinstance(value, timedelta) else timedelta(seconds=float(value))
    if interval <= timedelta(0):
        raise ValueError("Auto-refresh interval must be positive.")
    return interval


class HealthDataHub(SnapshotReader):
    """Single source of truth for today's health data."""

    def __init__(
        self,
        repository: HealthRepository,
        *,
        controller: Optional[HealthController] = None,
        config: Optional[HubConfig] = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or HubConfig()
        self._clock: Clock = clock or local_now
        self._repository = repository
        if controller is not None and controller.repository is not repository:
            raise ValueError("The controller must share the hub's repository.")
        self._controller = controller or HealthController(repository, clock=self._clock)

        self._snapshot: Optional[Snapshot] = None
        self._initialized = False
        self._loading = False
        self._disposed = False
        self._error_message: Optional[str] = None
        self._last_updated: Optional[datetime] = None
        self._generation = 0

        self._snapshots: BroadcastChannel[Optional[Snapshot]] = BroadcastChannel("snapshots")
        self._steps: BroadcastChannel[int] = BroadcastChannel("steps")
        self._calories: BroadcastChannel[float] = BroadcastChannel("calories")
        self._workouts: BroadcastChannel[tuple[WorkoutRecord, ...]] = BroadcastChannel("workouts")

        self._auto_refresh_interval = self._config.auto_refresh_interval
        self._auto_refresh_task: Optional[asyncio.Task[None]] = None
        self._init_task: Optional[asyncio.Task[None]] = None
        self._refresh_task: Optional[asyncio.Task[RefreshResult]] = None
        self._refresh_tasks: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Public getters
    # ------------------------------------------------------------------
    @property
    def repository(self) -> HealthRepository:
        return self._repository

    @property
    def controller(self) -> HealthController:
        return self._controller

    @property
    def config(self) -> HubConfig:
        return self._config

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def has_error(self) -> bool:
        return self._error_message is not None

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._last_updated

    @property
    def state(self) -> HubState:
        if self._loading:
            return HubState.LOADING
        if self._error_message is not None:
            return HubState.ERROR
        if self._snapshot is not None:
            return HubState.LOADED
        return HubState.IDLE

    @property
    def status(self) -> HubStatus:
        return HubStatus(
            state=self.state,
            error_message=self._error_message,
            last_updated=self._last_updated,
        )

    @property
    def auto_refresh_interval(self) -> timedelta:
        return self._auto_refresh_interval

    @property
    def auto_refresh_active(self) -> bool:
        return self._auto_refresh_task is not None and not self._auto_refresh_task.done()

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------
    @property
    def snapshots(self) -> BroadcastChannel[Optional[Snapshot]]:
        return self._snapshots

    @property
    def steps_stream(self) -> BroadcastChannel[int]:
        return self._steps

    @property
    def calories_stream(self) -> BroadcastChannel[float]:
        return self._calories

    @property
    def workouts_stream(self) -> BroadcastChannel[tuple[WorkoutRecord, ...]]:
        return self._workouts

    def _channels(self) -> tuple[BroadcastChannel, ...]:
        return (self._snapshots, self._steps, self._calories, self._workouts)

    def _publish(self, snapshot: Optional[Snapshot]) -> None:
        if snapshot is None:
            self._snapshots.emit(None)
            self._steps.emit(0)
            self._calories.emit(0.0)
            self._workouts.emit(())
            return
        self._snapshots.emit(snapshot)
        self._steps.emit(snapshot.steps)
        self._calories.emit(snapshot.calories)
        self._workouts.emit(snapshot.workouts)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        if self._disposed:
            return
        status = self.status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as exc:
                log_utils.log_message(f"HealthDataHub listener raised: {exc}", "ERROR", exc_info=True)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------
    async def initialize(self, auto_refresh: bool = True) -> None:
        """Verify access, load the first snapshot and optionally start auto-refresh.

        A second call once initialized is a no-op; concurrent callers share
        the in-flight initialization. Failures are recorded on the hub and
        re-raised as :class:`HubError` subclasses, leaving it uninitialized so
        the caller may retry.
        """

        if self._disposed:
            raise HubDisposedError("HealthDataHub has been disposed")
        if self._initialized:
            log_utils.log_message("HealthDataHub: Already initialized", "DEBUG")
            return
        if self._init_task is not None and not self._init_task.done():
            log_utils.log_message("HealthDataHub: Initialization already in progress", "DEBUG")
            await asyncio.shield(self._init_task)
            return

        task = self._init_task = asyncio.ensure_future(self._initialize(auto_refresh))
        try:
            await asyncio.shield(task)
        finally:
            if self._init_task is task and task.done():
                self._init_task = None

    async def _initialize(self, auto_refresh: bool) -> None:
        generation = self._generation
        log_utils.log_message("HealthDataHub: Initializing...", "INFO")
        self._loading = True
        self._notify()
        try:
            result = await self._repository.load(request_permissions=True)
            if self._disposed:
                raise HubDisposedError("HealthDataHub was disposed during initialization")
            if generation != self._generation:
                self._discard_stale(result)
                raise HubError("HealthDataHub was reset during initialization")
            if result.failure is not None:
                raise result.failure.to_exception()

            self._apply(result)

            if auto_refresh:
                self._start_auto_refresh()

            self._initialized = True
            log_utils.log_message("HealthDataHub: Initialization complete", "INFO")
        except HubError as exc:
            if generation == self._generation:
                self._error_message = str(exc)
            log_utils.log_message(f"HealthDataHub: Initialization failed: {exc}", "ERROR")
            raise
        finally:
            if generation == self._generation:
                self._loading = False
            self._notify()

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------
    def _apply(self, result: RefreshResult) -> None:
        snapshot = result.snapshot
        self._snapshot = snapshot
        self._last_updated = self._clock()
        self._error_message = None
        self._publish(snapshot)
        if result.failed_metrics:
            log_utils.log_message(
                f"HealthDataHub: Degraded metrics in this update: {list(result.failed_metrics)}",
                "WARN",
            )
        if snapshot is not None:
            log_utils.log_message(
                f"HealthDataHub: Data loaded - Steps: {snapshot.steps}, Calories: {snapshot.calories:.1f}",
                "INFO",
            )

    async def _fetch(self, force: bool) -> RefreshResult:
        if force:
            self._repository.clear_cache()
        return await self._repository.load()

    def _discard_stale(self, result: RefreshResult) -> None:
        """Drop the cache entry a load finishing after ``reset`` wrote."""

        if result.snapshot is not None and self._repository.cached_snapshot is result.snapshot:
            self._repository.clear_cache()

    async def refresh(self, force: bool = False) -> Optional[RefreshResult]:
        """Fetch fresh data and publish it.

        Returns ``None`` when the request was dropped because another refresh
        is in flight or the hub is disposed. ``force`` invalidates the cache
        first. Never raises: failures only update :attr:`error_message`.
        """

        if self._disposed:
            log_utils.log_message("HealthDataHub: Refresh ignored, hub disposed", "DEBUG")
            return None
        # A fetch started before reset() keeps its provider calls running.
        if self._loading or self._refresh_task is not None:
            log_utils.log_message("HealthDataHub: Refresh already in progress", "INFO")
            return None

        generation = self._generation
        self._loading = True
        self._error_message = None
        self._notify()
        task = self._refresh_task = asyncio.ensure_future(self._fetch(force))
        try:
            result = await task
        finally:
            if self._refresh_task is task:
                self._refresh_task = None
            if generation == self._generation:
                self._loading = False

        if self._disposed or generation != self._generation:
            log_utils.log_message("HealthDataHub: Discarding refresh result for a stale hub", "INFO")
            self._discard_stale(result)
            return result

        if result.ok:
            self._apply(result)
            log_utils.log_message("HealthDataHub: Refresh complete", "INFO")
        else:
            self._error_message = result.error_message
            log_utils.log_message(f"HealthDataHub: Refresh failed: {result.error_message}", "WARN")
        self._notify()
        return result

    async def load_data(self) -> RefreshResult:
        """Cache-first load through the controller; publishes newly adopted data."""

        generation = self._generation
        result = await self._controller.load_data()
        if self._disposed or generation != self._generation:
            return result
        if result.ok:
            if result.snapshot is not self._snapshot:
                self._apply(result)
        else:
            self._error_message = result.error_message
        self._notify()
        return result

    # ------------------------------------------------------------------
    # Auto-refresh
    # ------------------------------------------------------------------
    def _start_auto_refresh(self) -> None:
        self._cancel_auto_refresh_task()
        interval = self._auto_refresh_interval
        self._auto_refresh_task = asyncio.get_running_loop().create_task(
            self._auto_refresh_loop(interval)
        )
        log_utils.log_message(
            f"HealthDataHub: Auto-refresh started (interval: {interval})", "INFO"
        )

    async def _auto_refresh_loop(self, interval: timedelta) -> None:
        seconds = interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            self._on_auto_refresh_tick()

    def _on_auto_refresh_tick(self) -> None:
        if not self._initialized or self._loading or self._disposed or self._refresh_task is not None:
            log_utils.log_message("HealthDataHub: Auto-refresh tick skipped", "DEBUG")
            return
        log_utils.log_message("HealthDataHub: Auto-refresh triggered", "INFO")
        task = asyncio.ensure_future(self.refresh(force=False))
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    def _cancel_auto_refresh_task(self) -> None:
        if self._auto_refresh_task is not None:
            self._auto_refresh_task.cancel()
            self._auto_refresh_task = None

    def stop_auto_refresh(self) -> None:
        """Stop the periodic refresh; refreshes already started keep running."""

        self._cancel_auto_refresh_task()
        log_utils.log_message("HealthDataHub: Auto-refresh stopped", "INFO")

    def set_auto_refresh_interval(self, interval: Interval) -> None:
        """Change the period, restarting the loop if it is running."""

        self._auto_refresh_interval = _to_interval(interval)
        if self._auto_refresh_task is not None:
            self._start_auto_refresh()
        log_utils.log_message(
            f"HealthDataHub: Auto-refresh interval set to {self._auto_refresh_interval}", "INFO"
        )

    # ------------------------------------------------------------------
    # Permission management
    # ------------------------------------------------------------------
    async def request_permissions(self) -> bool:
        return await self._controller.request_permissions()

    async def has_permissions(self) -> bool:
        return await self._controller.has_permissions()

    async def open_provider_settings(self) -> None:
        await self._controller.open_settings()

    # ------------------------------------------------------------------
    # Utility methods
    # ------------------------------------------------------------------
    def summary(self) -> str:
        if not self.has_data:
            return "No data available"

        updated = self._last_updated.isoformat(sep=" ", timespec="seconds") if self._last_updated else "Never"
        average = self.average_heart_rate
        return "\n".join(
            [
                f"Health Summary (Updated: {updated})",
                f"Steps: {self.steps}",
                f"Calories: {self.calories:.1f} kcal",
                f"Workouts: {self.workout_count} sessions ({self.total_workout_minutes} min)",
                f"Heart Rate: {average if average is not None else 'N/A'} bpm (avg)",
            ]
        )

    def reset(self) -> None:
        """Return to the uninitialized idle state without releasing the hub."""

        self._generation += 1
        self._init_task = None
        self._snapshot = None
        self._initialized = False
        self._loading = False
        self._error_message = None
        self._last_updated = None
        self._controller.reset()
        self.stop_auto_refresh()
        self._publish(None)
        self._notify()
        log_utils.log_message("HealthDataHub: Reset complete", "INFO")

    # ------------------------------------------------------------------
    # Disposal
    # ------------------------------------------------------------------
    def dispose(self) -> None:
        """Stop the loop and close every channel; repeated calls are no-ops."""

        if self._disposed:
            return
        self._disposed = True
        self._cancel_auto_refresh_task()
        for channel in self._channels():
            channel.close()
        self._listeners.clear()
        log_utils.log_message("HealthDataHub: Disposed", "INFO")


__all__ = ["HealthDataHub"]
