__all__ = [
    "StationResolver",
    "resolve_station",
    "aggregate_routes",
    "aggregate_stations",
    "bucketize",
    "duration_histogram",
    "time_of_day_histogram",
    "calendar_histogram",
    "summarize",
    "station_markers",
    "route_lines",
]

from cyclestats.analytics.bucketing import (
    bucketize,
    calendar_histogram,
    duration_histogram,
    time_of_day_histogram,
)
from cyclestats.analytics.maps import route_lines, station_markers
from cyclestats.analytics.resolver import StationResolver, resolve_station
from cyclestats.analytics.routes import aggregate_routes
from cyclestats.analytics.stations import aggregate_stations
from cyclestats.analytics.summary import summarize
