from __future__ import annotations

import json

import pytest

from cyclestats.config.loader import load_config


_OVERRIDES = ("CYCLESTATS_TIMEZONE", "CYCLESTATS_STATION_FEED_URL", "CYCLESTATS_RIDES_PATH")


def _write_config(tmp_path, **analytics_overrides) -> str:
    analytics = {
        "timezone": "Europe/London",
        "histograms": {"duration": "1m", "time_of_day": "1h", "calendar": "1m"},
    }
    analytics.update(analytics_overrides)
    cfg = {
        "app": {"name": "Test"},
        "station_feed": {"url": "https://json.feed/stations.xml", "max_retries": 1},
        "cache": {"dir": "data/cache", "ttl_seconds": 60},
        "storage": {"rides_path": "data/rides.json"},
        "analytics": analytics,
        "logging": {"level": "INFO", "format": "%(message)s"},
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(cfg), encoding="utf-8")
    return str(path)


@pytest.fixture(autouse=True)
def _clear_overrides(monkeypatch) -> None:
    for name in _OVERRIDES:
        monkeypatch.delenv(name, raising=False)


def test_loads_file_values_relative_to_base_dir(tmp_path) -> None:
    cfg = load_config(_write_config(tmp_path), base_dir=tmp_path)
    assert cfg.app.name == "Test"
    assert cfg.station_feed.url == "https://json.feed/stations.xml"
    assert cfg.station_feed.max_retries == 1
    assert cfg.cache.dir == (tmp_path / "data/cache").resolve()
    assert cfg.storage.rides_path == (tmp_path / "data/rides.json").resolve()
    assert cfg.analytics.timezone == "Europe/London"
    assert cfg.analytics.histograms.time_of_day == "1h"
    assert cfg.analytics.coordinate_match_radius_km == 0.5
    assert cfg.logging.file is None


def test_env_overrides_file_values(monkeypatch, tmp_path) -> None:
    path = _write_config(tmp_path)
    monkeypatch.setenv("CYCLESTATS_TIMEZONE", "UTC")
    monkeypatch.setenv("CYCLESTATS_STATION_FEED_URL", "https://env.feed/stations.xml")
    monkeypatch.setenv("CYCLESTATS_RIDES_PATH", str(tmp_path / "elsewhere.json"))

    cfg = load_config(path, base_dir=tmp_path)
    assert cfg.analytics.timezone == "UTC"
    assert cfg.station_feed.url == "https://env.feed/stations.xml"
    assert cfg.storage.rides_path == tmp_path / "elsewhere.json"


def test_blank_env_value_does_not_override(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("CYCLESTATS_TIMEZONE", "  ")
    cfg = load_config(_write_config(tmp_path), base_dir=tmp_path)
    assert cfg.analytics.timezone == "Europe/London"


def test_rejects_unsupported_widths_and_timezones(tmp_path) -> None:
    bad_width = _write_config(tmp_path, histograms={"duration": "7m"})
    with pytest.raises(ValueError, match="duration"):
        load_config(bad_width, base_dir=tmp_path)

    bad_tz = _write_config(tmp_path, timezone="Mars/Olympus_Mons")
    with pytest.raises(ValueError, match="timezone"):
        load_config(bad_tz, base_dir=tmp_path)


def test_rejects_non_http_feed_url(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("CYCLESTATS_STATION_FEED_URL", "ftp://example.com/stations.xml")
    with pytest.raises(ValueError, match="station_feed.url"):
        load_config(_write_config(tmp_path), base_dir=tmp_path)
