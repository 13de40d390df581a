from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional


DurationWidth = Literal["15s", "30s", "1m", "2m", "5m"]
TimeOfDayWidth = Literal["15m", "30m", "1h", "2h"]
CalendarWidth = Literal["1d", "3d", "1w", "1m", "3m", "6m", "1y"]


@dataclass(frozen=True)
class AppSettings:
    name: str = "CycleStats"


@dataclass(frozen=True)
class StationFeedSettings:
    url: str
    timeout_s: float = 30.0
    max_retries: int = 3
    backoff_factor: float = 0.5
    user_agent: str = "cyclestats/0.1.0"


@dataclass(frozen=True)
class CacheSettings:
    dir: Path
    ttl_seconds: int


@dataclass(frozen=True)
class StorageSettings:
    rides_path: Path


@dataclass(frozen=True)
class HistogramDefaults:
    duration: DurationWidth = "1m"
    time_of_day: TimeOfDayWidth = "1h"
    calendar: CalendarWidth = "1m"


@dataclass(frozen=True)
class AnalyticsSettings:
    timezone: str
    histograms: HistogramDefaults
    coordinate_match_radius_km: float = 0.5
    fastest_min_distance_km: float = 1.0


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str
    file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    station_feed: StationFeedSettings
    cache: CacheSettings
    storage: StorageSettings
    analytics: AnalyticsSettings
    logging: LoggingSettings
