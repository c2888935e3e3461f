"""Health provider backed by a JSON daily export on disk."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from pydantic import BaseModel, Field

from health_hub.domain.provider import WORKOUT_END_KEY, WORKOUT_START_KEY, HealthProvider
from health_hub.infrastructure import log_utils
from health_hub.utils import converters


class ExportFlags(BaseModel):
    available: bool = True
    granted: bool = True


class StepSample(BaseModel):
    time: datetime
    count: int = Field(..., ge=0)


class CalorieSample(BaseModel):
    time: datetime
    kcal: float = Field(..., ge=0)


class HeartRateSample(BaseModel):
    time: datetime
    bpm: int = Field(..., gt=0)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.astimezone()


def _within(value: datetime, start: datetime, end: datetime) -> bool:
    return start <= _aware(value) <= end


class JsonExportHealthProvider(HealthProvider):
    """Answer range queries from a JSON export file.

    Expected layout::

        {
          "available": true,
          "granted": true,
          "steps": [{"time": "2025-01-15T08:00:00", "count": 1200}],
          "calories": [{"time": "...", "kcal": 85.5}],
          "workouts": [{"startTime": "...", "endTime": "...", "type": "Running", "calories": 310}],
          "heartRate": [{"time": "...", "bpm": 64}]
        }

    The file is read on every call so edits are picked up by a running hub.
    Each section is validated on its own; a malformed section only fails the
    query that reads it.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> Dict[str, Any]:
        with self._path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
        if not isinstance(document, dict):
            raise ValueError(f"Export {self._path} must contain a JSON object")
        return document

    async def _load(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._read_document)

    async def _flags(self) -> ExportFlags:
        document = await self._load()
        return ExportFlags.model_validate(
            {key: document[key] for key in ("available", "granted") if key in document}
        )

    @staticmethod
    def _section(document: Mapping[str, Any], key: str) -> List[Any]:
        section = document.get(key) or []
        if not isinstance(section, list):
            raise ValueError(f"Export section '{key}' must be a list")
        return section

    async def is_available(self) -> bool:
        if not self._path.exists():
            log_utils.log_message(f"Health export not found at {self._path}", "WARN")
            return False
        return (await self._flags()).available

    async def has_permissions(self) -> bool:
        return (await self._flags()).granted

    async def request_permissions(self) -> bool:
        granted = (await self._flags()).granted
        if not granted:
            log_utils.log_message(
                f"Permissions are managed by the export; set \"granted\" in {self._path}", "WARN"
            )
        return granted

    async def open_settings(self) -> None:
        log_utils.log_message(f"Health export settings live in {self._path}", "INFO")

    async def get_steps(self, start: datetime, end: datetime) -> int:
        document = await self._load()
        samples = [StepSample.model_validate(raw) for raw in self._section(document, "steps")]
        return sum(sample.count for sample in samples if _within(sample.time, start, end))

    async def get_calories(self, start: datetime, end: datetime) -> float:
        document = await self._load()
        samples = [CalorieSample.model_validate(raw) for raw in self._section(document, "calories")]
        return float(sum(sample.kcal for sample in samples if _within(sample.time, start, end)))

    async def get_workouts(self, start: datetime, end: datetime) -> Sequence[Mapping[str, Any]]:
        document = await self._load()
        workouts: List[Mapping[str, Any]] = []
        for raw in self._section(document, "workouts"):
            if not isinstance(raw, Mapping):
                raise ValueError("Workout entries must be JSON objects")
            began = converters.to_datetime(raw.get(WORKOUT_START_KEY))
            ended = converters.to_datetime(raw.get(WORKOUT_END_KEY))
            if began is not None and ended is not None and (began > end or ended < start):
                continue
            # Unparseable entries are passed through for the sync engine to reject.
            workouts.append(dict(raw))
        return workouts

    async def get_heart_rate(self, start: datetime, end: datetime) -> Sequence[int]:
        document = await self._load()
        samples = [HeartRateSample.model_validate(raw) for raw in self._section(document, "heartRate")]
        return [sample.bpm for sample in samples if _within(sample.time, start, end)]


__all__ = ["JsonExportHealthProvider", "StepSample", "CalorieSample", "HeartRateSample"]
