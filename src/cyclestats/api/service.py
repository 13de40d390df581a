from __future__ import annotations

import logging
# `Any` marks the dict payload boundary between the analytics layer and the HTTP schemas.
from typing import Any, Callable, Iterable, Optional, Sequence

from cyclestats.analytics.bucketing import (
    calendar_histogram,
    duration_histogram,
    histogram_total,
    time_of_day_histogram,
)
from cyclestats.analytics.maps import (
    map_bounds,
    marker_points,
    route_lines,
    route_points,
    station_markers,
)
from cyclestats.analytics.resolver import StationResolver
from cyclestats.analytics.routes import aggregate_routes, sort_routes
from cyclestats.analytics.stations import aggregate_stations, sort_stations, visited_stations
from cyclestats.analytics.summary import summarize
from cyclestats.config.models import AppConfig
from cyclestats.ingestion.rides import parse_rides_json
from cyclestats.ingestion.station_feed import StationFeedClient
from cyclestats.repository.local import LocalRideStore
from cyclestats.schemas.core import (
    Histogram,
    MapBounds,
    RouteStats,
    Station,
    StationStats,
    SummaryStats,
)
from cyclestats.utils.cache import JsonFileCache


logger = logging.getLogger(__name__)

StationSource = Callable[[], list[Station]]


def station_payload(station: Station) -> dict[str, Any]:
    return {
        "id": station.id,
        "name": station.name,
        "terminal_name": station.terminal_name,
        "lat": station.lat,
        "long": station.long,
        "nb_bikes": station.nb_bikes,
        "nb_e_bikes": station.nb_e_bikes,
        "nb_empty_docks": station.nb_empty_docks,
        "nb_docks": station.nb_docks,
    }


def route_payload(route: RouteStats) -> dict[str, Any]:
    return {
        "key": route.key,
        "start_station": station_payload(route.start_station),
        "end_station": station_payload(route.end_station),
        "count": route.count,
        "avg_duration_minutes": route.avg_duration_minutes,
        "min_duration_minutes": route.min_duration_minutes,
        "max_duration_minutes": route.max_duration_minutes,
        "distance_km": route.distance_km,
    }


def station_stats_payload(stats: StationStats) -> dict[str, Any]:
    return {
        "station": station_payload(stats.station),
        "pickups": stats.pickups,
        "dropoffs": stats.dropoffs,
        "total": stats.total,
        "net": stats.net,
    }


def histogram_payload(hist: Optional[Histogram], *, axis: str, bucket_width: str) -> dict[str, Any]:
    # "No data" is a normal outcome for a chart, not an error.
    if hist is None:
        return {"available": False, "axis": axis, "bucket_width": bucket_width, "labels": [], "counts": [], "total": 0}
    return {
        "available": True,
        "axis": hist.axis,
        "bucket_width": hist.bucket_width,
        "labels": list(hist.labels),
        "counts": list(hist.counts),
        "total": histogram_total(hist),
    }


def bounds_payload(bounds: Optional[MapBounds]) -> Optional[dict[str, float]]:
    if bounds is None:
        return None
    return {"south": bounds.south, "west": bounds.west, "north": bounds.north, "east": bounds.east}


def summary_payload(s: SummaryStats) -> dict[str, Any]:
    return {
        "total_rides": s.total_rides,
        "avg_duration_minutes": s.avg_duration_minutes,
        "min_duration_minutes": s.min_duration_minutes,
        "max_duration_minutes": s.max_duration_minutes,
        "earliest_ride": s.earliest_ride,
        "days_ago": s.days_ago,
        "total_spent_amount": s.total_spent_amount,
        "total_spent_rides": s.total_spent_rides,
        "stations_visited": s.stations_visited,
        "total_stations": s.total_stations,
        "e_bike_trips": s.e_bike_trips,
        "favourite_station": None if s.favourite_station is None else station_payload(s.favourite_station),
        "favourite_station_visits": s.favourite_station_visits,
        "longest_ride_distance_km": s.longest_ride_distance_km,
        "longest_ride_date": s.longest_ride_date,
        "most_rides_in_day": s.most_rides_in_day,
        "most_rides_in_day_date": s.most_rides_in_day_date,
        "total_distance_km": s.total_distance_km,
        "fastest_journey": (
            None
            if s.fastest_journey is None
            else {
                "duration_minutes": s.fastest_journey.duration_minutes,
                "distance_km": s.fastest_journey.distance_km,
                "speed_kph": s.fastest_journey.speed_kph,
            }
        ),
        "longest_streak": s.longest_streak,
        "longest_break_days": s.longest_break_days,
        "busiest_month": (
            None
            if s.busiest_month is None
            else {"year": s.busiest_month.year, "month": s.busiest_month.month, "count": s.busiest_month.count}
        ),
        "total_time_cycling_minutes": s.total_time_cycling_minutes,
    }


# `RideAnalyticsService` sits between HTTP routes and the pure analytics functions.
# It owns the two inputs (stored rides, station snapshot) and recomputes every view from them
# on each call, so routes never hold derived state.
class RideAnalyticsService:
    def __init__(
        self,
        config: AppConfig,
        *,
        store: Optional[LocalRideStore] = None,
        station_source: Optional[StationSource] = None,
    ) -> None:
        self._config = config
        self._store = store or LocalRideStore(config.storage)
        if station_source is None:
            client = StationFeedClient(config.station_feed, cache=JsonFileCache(config.cache))
            station_source = client.list_stations
        self._station_source = station_source

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def timezone(self) -> str:
        return self._config.analytics.timezone

    def stations(self) -> list[Station]:
        stations = self._station_source()
        logger.debug("Station snapshot has %d stations", len(stations))
        return stations

    def rides_info(self) -> dict[str, Any]:
        info = self._store.info()
        if info is None:
            return {"stored": False, "ride_count": 0, "saved_at_ms": None}
        return {"stored": True, "ride_count": info.ride_count, "saved_at_ms": info.saved_at_ms}

    def save_rides_json(self, text: str) -> dict[str, Any]:
        rides = parse_rides_json(text)
        info = self._store.save(rides)
        return {"stored": True, "ride_count": info.ride_count, "saved_at_ms": info.saved_at_ms}

    def clear_rides(self) -> None:
        self._store.clear()

    def summary(self) -> dict[str, Any]:
        stations = self.stations()
        stats = summarize(
            self._store.load(),
            stations,
            tz=self.timezone,
            resolver=StationResolver(stations),
            fastest_min_distance_km=self._config.analytics.fastest_min_distance_km,
        )
        return summary_payload(stats)

    def _routes(self) -> list[RouteStats]:
        return aggregate_routes(self._store.load(), self.stations())

    def routes(self, *, sort: str = "count", direction: str = "desc") -> list[dict[str, Any]]:
        return [route_payload(r) for r in sort_routes(self._routes(), sort, direction)]  # type: ignore[arg-type]

    def station_stats(
        self, *, sort: str = "total", direction: str = "desc", visited_only: bool = True
    ) -> list[dict[str, Any]]:
        stats = aggregate_stations(self._store.load(), self.stations())
        if visited_only:
            stats = visited_stations(stats)
        return [station_stats_payload(s) for s in sort_stations(stats, sort, direction)]  # type: ignore[arg-type]

    def duration_histogram(self, width: Optional[str] = None) -> dict[str, Any]:
        width = width or self._config.analytics.histograms.duration
        hist = duration_histogram(self._store.load(), width)
        return histogram_payload(hist, axis="duration", bucket_width=width)

    def time_of_day_histogram(self, width: Optional[str] = None) -> dict[str, Any]:
        width = width or self._config.analytics.histograms.time_of_day
        hist = time_of_day_histogram(self._store.load(), width, tz=self.timezone)
        return histogram_payload(hist, axis="time_of_day", bucket_width=width)

    def calendar_histogram(self, width: Optional[str] = None) -> dict[str, Any]:
        width = width or self._config.analytics.histograms.calendar
        hist = calendar_histogram(self._store.load(), width, tz=self.timezone)
        return histogram_payload(hist, axis="calendar", bucket_width=width)

    def map_stations(
        self, *, selected: Optional[Iterable[str]] = None, include_unvisited: bool = True
    ) -> dict[str, Any]:
        markers = station_markers(
            self._store.load(),
            self.stations(),
            selected=selected,
            include_unvisited=include_unvisited,
            max_distance_km=self._config.analytics.coordinate_match_radius_km,
        )
        return {
            "items": [
                {"station": station_payload(m.station), "visits": m.visits, "color": m.color} for m in markers
            ],
            "bounds": bounds_payload(map_bounds(marker_points(markers))),
        }

    def map_routes(self, *, selected: Optional[Sequence[str]] = None) -> dict[str, Any]:
        lines = route_lines(self._routes(), selected=selected)
        return {
            "items": [
                {"route": route_payload(line.route), "weight": line.weight, "points": [list(p) for p in line.points]}
                for line in lines
            ],
            "bounds": bounds_payload(map_bounds(route_points(lines))),
        }
