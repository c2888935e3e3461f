"""Time-bounded holder for the most recently assembled snapshot."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from health_hub.domain.configuration import DEFAULT_CACHE_TTL
from health_hub.domain.records import Snapshot, local_now
from health_hub.infrastructure import log_utils

Clock = Callable[[], datetime]


class SnapshotCache:
    """Single-entry cache whose validity is checked on every read.

    Nothing is evicted in the background: ``get`` compares the entry's capture
    time against the clock and either returns the whole snapshot or nothing.
    """

    def __init__(self, ttl: timedelta = DEFAULT_CACHE_TTL, *, clock: Clock | None = None) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive.")
        self._ttl = ttl
        self._clock: Clock = clock or local_now
        self._lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self._captured_at: Optional[datetime] = None

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def captured_at(self) -> Optional[datetime]:
        with self._lock:
            return self._captured_at

    def get(self) -> Optional[Snapshot]:
        with self._lock:
            if self._snapshot is None or self._captured_at is None:
                return None
            if self._clock() - self._captured_at < self._ttl:
                return self._snapshot
            return None

    def put(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._captured_at = self._clock()

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
            self._captured_at = None
        log_utils.log_message("Snapshot cache cleared.", "DEBUG")


__all__ = ["SnapshotCache", "Clock"]
