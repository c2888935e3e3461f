"""Provider health checks for the health-hub CLI."""

from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Awaitable, Callable, Iterable, List, Sequence

from health_hub.domain.provider import HealthProvider


@dataclass
class CheckResult:
    """Represents a single provider check outcome."""

    name: str
    ok: bool
    detail: str


def _format_duration(start: float) -> str:
    elapsed = perf_counter() - start
    if elapsed < 0.001:
        return "<1ms"
    return f"{int(elapsed * 1000)}ms"


def _format_exception(exc: Exception) -> str:
    message = str(exc).strip()
    if not message:
        message = exc.__class__.__name__
    return message.splitlines()[0]


async def _run_check(
    name: str,
    probe: Callable[[], Awaitable[bool]],
    failure_detail: str,
) -> CheckResult:
    start = perf_counter()
    try:
        ok = await probe()
    except Exception as exc:
        return CheckResult(name=name, ok=False, detail=_format_exception(exc))
    if not ok:
        return CheckResult(name=name, ok=False, detail=failure_detail)
    return CheckResult(name=name, ok=True, detail=_format_duration(start))


async def check_availability(provider: HealthProvider) -> CheckResult:
    return await _run_check("Provider", provider.is_available, "not available")


async def check_permissions(provider: HealthProvider) -> CheckResult:
    return await _run_check("Access", provider.has_permissions, "permissions not granted")


async def run_status_checks(
    provider: HealthProvider,
    *,
    checks: Sequence[Callable[[HealthProvider], Awaitable[CheckResult]]] | None = None,
) -> List[CheckResult]:
    """Execute provider checks in order, allowing override for testing."""

    if checks is None:
        checks = (check_availability, check_permissions)

    return [await check(provider) for check in checks]


def render_results(results: Iterable[CheckResult]) -> str:
    lines = []
    for result in results:
        status = "OK" if result.ok else "FAIL"
        lines.append(f"{result.name:<8} {status:<4} {result.detail}")
    return "\n".join(lines)
