from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence

import pandas as pd

from cyclestats.analytics.resolver import StationResolver
from cyclestats.schemas.core import Ride, RouteStats, Station
from cyclestats.utils.dates import duration_minutes, round_half_up
from cyclestats.utils.geo import haversine_km


RouteSortField = Literal[
    "start_station",
    "end_station",
    "count",
    "distance",
    "avg_duration",
    "min_duration",
    "max_duration",
]
SortDirection = Literal["desc", "asc", "none"]

ROUTE_SORT_FIELDS = (
    "start_station",
    "end_station",
    "count",
    "distance",
    "avg_duration",
    "min_duration",
    "max_duration",
)


@dataclass
class _RouteAccumulator:
    start_station: Station
    end_station: Station
    distance_km: float
    count: int = 0
    avg: Optional[int] = None
    min: Optional[int] = None
    max: Optional[int] = None

    def add(self, minutes: Optional[int]) -> None:
        self.count += 1
        if minutes is None:
            return
        if self.avg is None:
            self.avg = minutes
        else:
            # Rounded after every update, so it can drift from the exact mean.
            self.avg = round_half_up((self.avg * (self.count - 1) + minutes) / self.count)
        if self.min is None or minutes < self.min:
            self.min = minutes
        if self.max is None or minutes > self.max:
            self.max = minutes

    def freeze(self) -> RouteStats:
        return RouteStats(
            start_station=self.start_station,
            end_station=self.end_station,
            count=self.count,
            avg_duration_minutes=self.avg,
            min_duration_minutes=self.min,
            max_duration_minutes=self.max,
            distance_km=self.distance_km,
        )


def aggregate_routes(
    rides: Iterable[Ride],
    stations: Sequence[Station],
    *,
    resolver: Optional[StationResolver] = None,
) -> list[RouteStats]:
    """
    Group rides by their resolved (start station, end station) pair.

    Direction matters, A->B and B->A are separate routes. Rides with an unresolved endpoint
    are skipped. Output keeps first-seen order; sorting is left to `sort_routes`.
    """

    resolver = resolver or StationResolver(stations)
    acc: dict[tuple[str, str], _RouteAccumulator] = {}

    for ride in rides:
        start = resolver.resolve(ride.start_address)
        end = resolver.resolve(ride.end_address)
        if start is None or end is None:
            continue

        key = (start.id, end.id)
        route = acc.get(key)
        if route is None:
            route = _RouteAccumulator(
                start_station=start,
                end_station=end,
                distance_km=haversine_km(start.lat, start.long, end.lat, end.long),
            )
            acc[key] = route
        route.add(duration_minutes(ride))

    return [r.freeze() for r in acc.values()]


def _route_sort_value(route: RouteStats, field: str) -> float | str:
    if field == "start_station":
        return route.start_station.name.lower()
    if field == "end_station":
        return route.end_station.name.lower()
    if field == "count":
        return route.count
    if field == "distance":
        return route.distance_km
    if field == "avg_duration":
        return route.avg_duration_minutes or 0
    if field == "min_duration":
        return route.min_duration_minutes or 0
    if field == "max_duration":
        return route.max_duration_minutes or 0
    raise ValueError(f"Unsupported route sort field: {field}")


def sort_routes(
    routes: Sequence[RouteStats],
    field: RouteSortField = "count",
    direction: SortDirection = "desc",
) -> list[RouteStats]:
    if field not in ROUTE_SORT_FIELDS:
        raise ValueError(f"Unsupported route sort field: {field}")
    if direction not in ("desc", "asc", "none"):
        raise ValueError(f"Unsupported sort direction: {direction}")
    if direction == "none":
        return list(routes)
    # `sorted` is stable, so ties keep aggregation order.
    return sorted(routes, key=lambda r: _route_sort_value(r, field), reverse=direction == "desc")


def routes_frame(routes: Sequence[RouteStats]) -> pd.DataFrame:
    columns = [
        "route_key",
        "start_station_id",
        "start_station",
        "end_station_id",
        "end_station",
        "count",
        "distance_km",
        "avg_duration_minutes",
        "min_duration_minutes",
        "max_duration_minutes",
    ]
    rows = [
        {
            "route_key": r.key,
            "start_station_id": r.start_station.id,
            "start_station": r.start_station.name,
            "end_station_id": r.end_station.id,
            "end_station": r.end_station.name,
            "count": r.count,
            "distance_km": r.distance_km,
            "avg_duration_minutes": r.avg_duration_minutes,
            "min_duration_minutes": r.min_duration_minutes,
            "max_duration_minutes": r.max_duration_minutes,
        }
        for r in routes
    ]
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows, columns=columns)
    for c in ["avg_duration_minutes", "min_duration_minutes", "max_duration_minutes"]:
        df[c] = df[c].astype("Int64")
    return df
