from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class HubState(str, Enum):
    """Lifecycle of the data loaded by a controller or hub."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class HubStatus:
    """Point-in-time view of a hub's state for observers."""

    state: HubState
    error_message: str | None = None
    last_updated: datetime | None = None


__all__ = ["HubState", "HubStatus"]
