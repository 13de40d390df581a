from __future__ import annotations

import json
import logging
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from cyclestats.config.models import StorageSettings
from cyclestats.ingestion.rides import RideValidationError, parse_rides, rides_to_json
from cyclestats.schemas.core import Ride


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredRidesInfo:
    saved_at_ms: int
    ride_count: int


def _now_ms() -> int:
    return int(time.time() * 1000)


class LocalRideStore:
    """
    Persist the validated ride list as a single JSON file.

    File format: `{"rides": [...], "savedAt": <epoch ms>, "rideCount": <n>}`.
    A bare JSON array (the first storage format) is still readable; it reports `savedAt`
    as the time of reading and is rewritten in the current format on the next save.
    """

    def __init__(self, settings: StorageSettings, *, now_ms: Callable[[], int] = _now_ms) -> None:
        self._path = settings.rides_path
        self._now_ms = now_ms

    @property
    def path(self) -> Path:
        return self._path

    def _read_raw(self) -> Optional[object]:
        if not self._path.exists():
            return None
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable ride store %s", self._path)
            return None

    def info(self) -> Optional[StoredRidesInfo]:
        raw = self._read_raw()
        if isinstance(raw, list):
            if not raw:
                return None
            return StoredRidesInfo(saved_at_ms=self._now_ms(), ride_count=len(raw))
        if isinstance(raw, dict) and isinstance(raw.get("rides"), list):
            saved_at = raw.get("savedAt") or self._now_ms()
            count = raw.get("rideCount") or len(raw["rides"])
            return StoredRidesInfo(saved_at_ms=int(saved_at), ride_count=int(count))
        return None

    def load(self) -> list[Ride]:
        raw = self._read_raw()
        if isinstance(raw, dict):
            raw = raw.get("rides")
        if not isinstance(raw, list):
            return []
        try:
            rides = parse_rides(raw)
        except RideValidationError as e:
            logger.warning("Stored rides failed validation, ignoring them: %s", e)
            return []
        logger.info("Loaded %d rides from %s", len(rides), self._path)
        return rides

    def save(self, rides: Sequence[Ride]) -> StoredRidesInfo:
        info = StoredRidesInfo(saved_at_ms=self._now_ms(), ride_count=len(rides))
        payload = {"rides": rides_to_json(rides), "savedAt": info.saved_at_ms, "rideCount": info.ride_count}
        serialized = json.dumps(payload, ensure_ascii=False)

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=self._path.parent) as tmp:
            tmp.write(serialized)
            tmp_path = Path(tmp.name)
        tmp_path.replace(self._path)
        logger.info("Saved %d rides to %s", info.ride_count, self._path)
        return info

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
