"""Type conversion helpers for provider payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional


def to_float(value: Any) -> Optional[float]:
    """Safely convert ``value`` to ``float`` where possible."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return value
    if isinstance(value, (int, Decimal)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return float(stripped)
        except ValueError:
            return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> Optional[int]:
    """Convert ``value`` to ``int``, truncating floats; ``None`` when impossible."""

    if isinstance(value, int) and not isinstance(value, bool):
        return value
    numeric = to_float(value)
    if numeric is None or numeric != numeric:
        return None
    return int(numeric)


def to_datetime(value: Any) -> Optional[datetime]:
    """Best-effort conversion to an aware ``datetime``.

    Accepts ``datetime`` objects (naive values are taken as local time), epoch
    milliseconds and ISO-8601 strings.
    """

    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.astimezone()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).astimezone()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if stripped.endswith("Z"):
            stripped = stripped[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(stripped)
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.astimezone()
    return None
