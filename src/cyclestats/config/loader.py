from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cyclestats.config.models import (
    AnalyticsSettings,
    AppConfig,
    AppSettings,
    CacheSettings,
    HistogramDefaults,
    LoggingSettings,
    StationFeedSettings,
    StorageSettings,
)


DEFAULT_STATION_FEED_URL = "https://tfl.gov.uk/tfl/syndication/feeds/cycle-hire/livecyclehireupdates.xml"

DURATION_WIDTHS = ("15s", "30s", "1m", "2m", "5m")
TIME_OF_DAY_WIDTHS = ("15m", "30m", "1h", "2h")
CALENDAR_WIDTHS = ("1d", "3d", "1w", "1m", "3m", "6m", "1y")


def load_dotenv_if_available(path: str = ".env") -> None:
    try:
        from dotenv import load_dotenv  # type: ignore
    except ModuleNotFoundError:
        return
    load_dotenv(path)


def _as_path(value: str, *, base_dir: Path) -> Path:
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base_dir / candidate)


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_config(path: Optional[str | Path] = None, *, base_dir: Optional[Path] = None) -> AppConfig:
    """
    Load typed application config from JSON.

    - Path resolution is relative to `base_dir` (defaults to current working directory).
    - `.env` is loaded when python-dotenv is installed (dev convenience).
    - `CYCLESTATS_TIMEZONE`, `CYCLESTATS_STATION_FEED_URL` and `CYCLESTATS_RIDES_PATH`
      override the file values.
    """

    load_dotenv_if_available()

    config_path = Path(path or os.getenv("CYCLESTATS_CONFIG_PATH", "config/default.json")).resolve()
    base_dir = (base_dir or Path.cwd()).resolve()

    raw = json.loads(config_path.read_text(encoding="utf-8"))

    app_raw: Mapping[str, Any] = raw.get("app", {})
    app = AppSettings(name=str(app_raw.get("name", "CycleStats")))

    feed_raw: Mapping[str, Any] = raw.get("station_feed", {})
    station_feed = StationFeedSettings(
        url=_env_str("CYCLESTATS_STATION_FEED_URL") or str(feed_raw.get("url", DEFAULT_STATION_FEED_URL)),
        timeout_s=float(feed_raw.get("timeout_s", 30.0)),
        max_retries=int(feed_raw.get("max_retries", 3)),
        backoff_factor=float(feed_raw.get("backoff_factor", 0.5)),
        user_agent=str(feed_raw.get("user_agent", "cyclestats/0.1.0")),
    )
    if not station_feed.url.startswith(("http://", "https://")):
        raise ValueError(f"Unsupported station_feed.url: {station_feed.url}")

    cache_raw: Mapping[str, Any] = raw.get("cache", {})
    cache = CacheSettings(
        dir=_as_path(str(cache_raw.get("dir", "data/cache")), base_dir=base_dir),
        ttl_seconds=int(cache_raw.get("ttl_seconds", 300)),
    )

    storage_raw: Mapping[str, Any] = raw.get("storage", {})
    rides_value = _env_str("CYCLESTATS_RIDES_PATH") or str(storage_raw.get("rides_path", "data/rides.json"))
    storage = StorageSettings(rides_path=_as_path(rides_value, base_dir=base_dir))

    analytics_raw: Mapping[str, Any] = raw.get("analytics", {})
    histograms_raw: Mapping[str, Any] = analytics_raw.get("histograms", {})
    histograms = HistogramDefaults(
        duration=str(histograms_raw.get("duration", "1m")),  # type: ignore[arg-type]
        time_of_day=str(histograms_raw.get("time_of_day", "1h")),  # type: ignore[arg-type]
        calendar=str(histograms_raw.get("calendar", "1m")),  # type: ignore[arg-type]
    )
    if histograms.duration not in DURATION_WIDTHS:
        raise ValueError(f"Unsupported analytics.histograms.duration: {histograms.duration}")
    if histograms.time_of_day not in TIME_OF_DAY_WIDTHS:
        raise ValueError(f"Unsupported analytics.histograms.time_of_day: {histograms.time_of_day}")
    if histograms.calendar not in CALENDAR_WIDTHS:
        raise ValueError(f"Unsupported analytics.histograms.calendar: {histograms.calendar}")

    analytics = AnalyticsSettings(
        timezone=_env_str("CYCLESTATS_TIMEZONE") or str(analytics_raw.get("timezone", "Europe/London")),
        histograms=histograms,
        coordinate_match_radius_km=float(analytics_raw.get("coordinate_match_radius_km", 0.5)),
        fastest_min_distance_km=float(analytics_raw.get("fastest_min_distance_km", 1.0)),
    )
    try:
        ZoneInfo(analytics.timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown analytics.timezone: {analytics.timezone}") from e

    logging_raw: Mapping[str, Any] = raw.get("logging", {})
    file_value = logging_raw.get("file")
    log_file = None if not file_value else _as_path(str(file_value), base_dir=base_dir)
    logging_settings = LoggingSettings(
        level=str(logging_raw.get("level", "INFO")),
        format=str(logging_raw.get("format", "%(asctime)s %(levelname)s %(name)s - %(message)s")),
        file=log_file,
    )

    return AppConfig(
        app=app,
        station_feed=station_feed,
        cache=cache,
        storage=storage,
        analytics=analytics,
        logging=logging_settings,
    )
