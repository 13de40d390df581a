from __future__ import annotations

import sys
from pathlib import Path

# Allow running scripts without requiring an editable install (`pip install -e .`).
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import argparse
import json
import logging
from datetime import datetime, timezone

import pandas as pd

from cyclestats.analytics.bucketing import (
    calendar_histogram,
    duration_histogram,
    histogram_rows,
    time_of_day_histogram,
)
from cyclestats.analytics.resolver import StationResolver
from cyclestats.analytics.routes import aggregate_routes, routes_frame, sort_routes
from cyclestats.analytics.stations import aggregate_stations, sort_stations, stations_frame, visited_stations
from cyclestats.analytics.summary import summarize
from cyclestats.api.service import summary_payload
from cyclestats.config.loader import load_config
from cyclestats.ingestion.rides import parse_rides_json
from cyclestats.ingestion.station_feed import StationFeedClient
from cyclestats.repository.local import LocalRideStore
from cyclestats.utils.cache import JsonFileCache
from cyclestats.utils.logging import configure_logging


logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Export ride analytics tables as CSV/JSON.")
    parser.add_argument("--rides", default=None, help="Ride JSON export; defaults to the local ride store")
    parser.add_argument("--out-dir", default="data/exports")
    parser.add_argument("--duration-width", default=None)
    parser.add_argument("--time-of-day-width", default=None)
    parser.add_argument("--calendar-width", default=None)
    parser.add_argument("--all-stations", action="store_true", help="Include stations with no rides")
    args = parser.parse_args()

    config = load_config()
    configure_logging(config.logging)

    if args.rides:
        rides_path = Path(args.rides)
        if not rides_path.exists():
            raise FileNotFoundError(f"Missing rides file: {rides_path}")
        rides = parse_rides_json(rides_path.read_text(encoding="utf-8"))
    else:
        rides = LocalRideStore(config.storage).load()
    if not rides:
        logger.warning("No rides to analyse")

    stations = StationFeedClient(config.station_feed, cache=JsonFileCache(config.cache)).list_stations()
    # One resolver for the whole run so each distinct address is matched once.
    resolver = StationResolver(stations)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    tz = config.analytics.timezone

    routes = sort_routes(aggregate_routes(rides, stations, resolver=resolver), "count", "desc")
    routes_path = out_dir / "routes.csv"
    routes_frame(routes).to_csv(routes_path, index=False)
    logger.info("Wrote %s (%d routes)", routes_path, len(routes))

    station_stats = aggregate_stations(rides, stations, resolver=resolver)
    if not args.all_stations:
        station_stats = visited_stations(station_stats)
    station_stats = sort_stations(station_stats, "total", "desc")
    stations_path = out_dir / "stations.csv"
    stations_frame(station_stats).to_csv(stations_path, index=False)
    logger.info("Wrote %s (%d stations)", stations_path, len(station_stats))

    histograms = {
        "duration": duration_histogram(rides, args.duration_width or config.analytics.histograms.duration),
        "time_of_day": time_of_day_histogram(
            rides, args.time_of_day_width or config.analytics.histograms.time_of_day, tz=tz
        ),
        "calendar": calendar_histogram(rides, args.calendar_width or config.analytics.histograms.calendar, tz=tz),
    }
    for axis, hist in histograms.items():
        if hist is None:
            logger.info("No data for %s histogram", axis)
            continue
        hist_path = out_dir / f"histogram_{axis}.csv"
        pd.DataFrame(histogram_rows(hist)).to_csv(hist_path, index=False)
        logger.info("Wrote %s", hist_path)

    summary = summarize(
        rides,
        stations,
        tz=tz,
        resolver=resolver,
        fastest_min_distance_km=config.analytics.fastest_min_distance_km,
    )
    summary_path = out_dir / "summary.json"
    summary_path.write_text(
        json.dumps(summary_payload(summary), ensure_ascii=False, indent=2, default=str), encoding="utf-8"
    )
    logger.info("Wrote %s", summary_path)

    run_meta = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "ride_count": len(rides),
        "station_count": len(stations),
        "timezone": tz,
        "artifacts": sorted(p.name for p in out_dir.iterdir() if p.is_file()),
    }
    (out_dir / "_run_meta.json").write_text(json.dumps(run_meta, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Wrote %s", out_dir / "_run_meta.json")


if __name__ == "__main__":
    main()
