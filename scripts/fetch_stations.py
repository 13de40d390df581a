from __future__ import annotations

import sys
from pathlib import Path

# Allow running scripts without requiring an editable install (`pip install -e .`).
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import argparse
import logging

from cyclestats.config.loader import load_config
from cyclestats.ingestion.station_feed import StationFeedClient, stations_frame
from cyclestats.utils.cache import JsonFileCache
from cyclestats.utils.logging import configure_logging


logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Snapshot the live station directory to CSV.")
    parser.add_argument("--out", default="data/stations.csv")
    parser.add_argument("--no-cache", action="store_true")
    args = parser.parse_args()

    config = load_config()
    configure_logging(config.logging)

    client = StationFeedClient(config.station_feed, cache=JsonFileCache(config.cache))
    stations = client.list_stations(use_cache=not args.no_cache)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    stations_frame(stations).to_csv(out, index=False)
    logger.info("Wrote %s (%d stations)", out, len(stations))


if __name__ == "__main__":
    main()
