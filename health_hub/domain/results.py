"""Outcome types returned by the sync engine instead of raised exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence, Tuple, TYPE_CHECKING

from health_hub.domain.records import Snapshot

if TYPE_CHECKING:
    from health_hub.application.exceptions import HubError


class ErrorKind(str, Enum):
    """Failure categories a refresh can run into.

    ``FETCH_FAILED`` labels a single metric query that failed; the load
    still succeeds with that metric at its zero value.
    """

    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PERMISSION_DENIED = "permission_denied"
    FETCH_FAILED = "fetch_failed"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class HubFailure:
    """A failure with a human-readable message.

    ``metric`` is set when the failure is confined to one metric query.
    """

    kind: ErrorKind
    message: str
    metric: str | None = None

    def to_exception(self) -> "HubError":
        """Map the failure onto the exception raised at the initialize boundary."""

        from health_hub.application import exceptions

        mapping = {
            ErrorKind.PROVIDER_UNAVAILABLE: exceptions.ProviderUnavailableError,
            ErrorKind.PERMISSION_DENIED: exceptions.PermissionDeniedError,
        }
        error_cls = mapping.get(self.kind, exceptions.SnapshotAssemblyError)
        return error_cls(self.message)

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of one load through the sync engine.

    A successful result always carries a snapshot. ``metric_failures`` holds
    one ``FETCH_FAILED`` entry per metric that degraded to its zero value;
    they do not make the result a failure.
    """

    snapshot: Snapshot | None = None
    failure: HubFailure | None = None
    metric_failures: Sequence[HubFailure] = field(default_factory=tuple)
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None and self.snapshot is not None

    @property
    def error_message(self) -> str | None:
        return self.failure.message if self.failure else None

    @property
    def failed_metrics(self) -> Tuple[str, ...]:
        return tuple(f.metric for f in self.metric_failures if f.metric)

    @classmethod
    def success(
        cls,
        snapshot: Snapshot,
        *,
        metric_failures: Sequence[HubFailure] = (),
        from_cache: bool = False,
    ) -> "RefreshResult":
        return cls(snapshot=snapshot, metric_failures=tuple(metric_failures), from_cache=from_cache)

    @classmethod
    def failed(cls, kind: ErrorKind, message: str) -> "RefreshResult":
        return cls(failure=HubFailure(kind=kind, message=message))


__all__ = ["ErrorKind", "HubFailure", "RefreshResult"]
