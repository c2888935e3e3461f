"""
State controller wrapping the sync engine with an idle/loading/loaded/error
state machine.

``load_data`` is cache-first and single-flight: a valid cache entry is adopted
without touching the provider, and callers arriving while a load is in flight
join that load. ``refresh`` always invalidates the cache and fetches.
A failed load keeps the previously loaded snapshot readable.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, List, Optional

from health_hub.application.repository import HealthRepository
from health_hub.application.snapshot_cache import Clock
from health_hub.domain.metrics import SnapshotReader
from health_hub.domain.records import Snapshot, local_now
from health_hub.domain.results import RefreshResult
from health_hub.domain.state import HubState, HubStatus
from health_hub.infrastructure import log_utils

Listener = Callable[[HubStatus], None]


class HealthController(SnapshotReader):
    """Four-state machine over a shared :class:`HealthRepository`."""

    def __init__(self, repository: HealthRepository, *, clock: Clock | None = None) -> None:
        self._repository = repository
        self._clock: Clock = clock or local_now
        self._state = HubState.IDLE
        self._snapshot: Optional[Snapshot] = None
        self._error_message: Optional[str] = None
        self._last_updated: Optional[datetime] = None
        self._inflight: Optional[asyncio.Task[RefreshResult]] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def repository(self) -> HealthRepository:
        return self._repository

    @property
    def state(self) -> HubState:
        return self._state

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._last_updated

    @property
    def is_loading(self) -> bool:
        return self._state is HubState.LOADING

    @property
    def is_loaded(self) -> bool:
        return self._state is HubState.LOADED

    @property
    def has_error(self) -> bool:
        return self._state is HubState.ERROR

    @property
    def status(self) -> HubStatus:
        return HubStatus(
            state=self._state,
            error_message=self._error_message,
            last_updated=self._last_updated,
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        status = self.status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as exc:
                log_utils.log_message(f"Controller listener raised: {exc}", "ERROR", exc_info=True)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def load_data(self) -> RefreshResult:
        """Load today's data, preferring a valid cache entry."""

        cached = self._repository.cached_snapshot
        if cached is not None:
            log_utils.log_message("Using cached health data.", "DEBUG")
            self._snapshot = cached
            self._state = HubState.LOADED
            self._error_message = None
            self._notify()
            return RefreshResult.success(cached, from_cache=True)

        if self._inflight is not None and not self._inflight.done():
            log_utils.log_message("Joining in-flight health data load.", "DEBUG")
            return await asyncio.shield(self._inflight)

        self._inflight = asyncio.ensure_future(self._run_load(request_permissions=True))
        try:
            return await asyncio.shield(self._inflight)
        finally:
            if self._inflight is not None and self._inflight.done():
                self._inflight = None

    async def refresh(self) -> RefreshResult:
        """Invalidate the cache and load fresh data from the provider."""

        log_utils.log_message("Refreshing health data.", "INFO")
        self._repository.clear_cache()
        return await self._run_load(request_permissions=False)

    async def _run_load(self, *, request_permissions: bool) -> RefreshResult:
        self._state = HubState.LOADING
        self._error_message = None
        self._notify()

        result = await self._repository.load(request_permissions=request_permissions)

        if result.ok:
            self._snapshot = result.snapshot
            self._state = HubState.LOADED
            self._error_message = None
            self._last_updated = self._clock()
            log_utils.log_message("Health data loaded successfully.", "INFO")
        else:
            self._state = HubState.ERROR
            self._error_message = result.error_message
            log_utils.log_message(f"Error loading health data: {result.error_message}", "WARN")
        self._notify()
        return result

    def reset(self) -> None:
        """Return to idle, dropping held data and the repository cache."""

        self._state = HubState.IDLE
        self._snapshot = None
        self._error_message = None
        self._last_updated = None
        self._repository.clear_cache()
        self._notify()

    # ------------------------------------------------------------------
    # Permission management
    # ------------------------------------------------------------------
    async def request_permissions(self) -> bool:
        try:
            log_utils.log_message("Requesting health data permissions.", "INFO")
            granted = await self._repository.request_permissions()
            log_utils.log_message(f"Permissions granted: {granted}", "INFO")
            return granted
        except Exception as exc:
            log_utils.log_message(f"Error requesting permissions: {exc}", "ERROR")
            return False

    async def has_permissions(self) -> bool:
        try:
            return await self._repository.has_permissions()
        except Exception as exc:
            log_utils.log_message(f"Error checking permissions: {exc}", "ERROR")
            return False

    async def open_settings(self) -> None:
        try:
            await self._repository.open_settings()
        except Exception as exc:
            log_utils.log_message(f"Error opening provider settings: {exc}", "ERROR")


__all__ = ["HealthController", "Listener"]
