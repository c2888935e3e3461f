from datetime import datetime, timezone

import pytest

from health_hub.application.repository import METRIC_STEPS, HealthRepository
from health_hub.infrastructure.timeout_provider import ProviderTimeoutError, TimeoutHealthProvider
from tests.fake_provider import FakeHealthProvider

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_calls_within_budget_pass_through():
    inner = FakeHealthProvider(steps=77, heart_rate=[61])
    provider = TimeoutHealthProvider(inner, timeout=1.0)

    assert await provider.is_available()
    assert await provider.get_steps(NOW, NOW) == 77
    assert await provider.get_heart_rate(NOW, NOW) == [61]
    await provider.open_settings()
    assert inner.calls["open_settings"] == 1


@pytest.mark.asyncio
async def test_slow_call_raises_provider_timeout(capture_logs):
    provider = TimeoutHealthProvider(FakeHealthProvider(delay=0.5), timeout=0.05)

    with pytest.raises(ProviderTimeoutError) as excinfo:
        await provider.get_calories(NOW, NOW)

    assert excinfo.value.operation == "get_calories"
    assert isinstance(excinfo.value, TimeoutError)
    assert any(level == "WARN" for _, level in capture_logs)


@pytest.mark.asyncio
async def test_timed_out_metric_degrades_in_snapshot():
    inner = FakeHealthProvider(steps=100, delay=0.5)
    repository = HealthRepository(TimeoutHealthProvider(inner, timeout=0.05), clock=lambda: NOW)

    result = await repository.load()

    assert result.ok
    assert METRIC_STEPS in result.failed_metrics
    assert result.snapshot.steps == 0


def test_timeout_must_be_positive():
    with pytest.raises(ValueError):
        TimeoutHealthProvider(FakeHealthProvider(), timeout=0)
