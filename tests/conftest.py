import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

os.environ.setdefault("HUB_LOG_TO_CONSOLE", "false")
os.environ.setdefault("HUB_LOG_DIR", str(Path(tempfile.gettempdir()) / "health_hub_tests"))


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from health_hub.infrastructure import log_utils  # noqa: E402
from tests.fake_provider import FakeHealthProvider  # noqa: E402


class FakeClock:
    """Manually advanced clock for TTL and timestamp assertions."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def provider() -> FakeHealthProvider:
    return FakeHealthProvider()


@pytest.fixture
def capture_logs(monkeypatch):
    captured = []

    def _fake_log(msg: str, level: str = "INFO", tag=None, **kwargs) -> None:
        captured.append((msg, level))

    monkeypatch.setattr(log_utils, "log_message", _fake_log)
    return captured
