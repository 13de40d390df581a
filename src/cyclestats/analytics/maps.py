from __future__ import annotations

from typing import Iterable, Optional, Sequence

from cyclestats.analytics.resolver import StationResolver
from cyclestats.schemas.core import MapBounds, Ride, RouteLine, RouteStats, Station, StationMarker
from cyclestats.utils.dates import round_half_up


UNVISITED_COLOR = "#9CA3AF"
TOP_COLOR = "rgb(34, 197, 94)"
MIN_ROUTE_WEIGHT = 2.0
MAX_ROUTE_WEIGHT = 8.0


def visit_counts(rides: Iterable[Ride], resolver: StationResolver) -> dict[str, int]:
    counts: dict[str, int] = {}
    for ride in rides:
        for address in (ride.start_address, ride.end_address):
            station = resolver.resolve(address)
            if station is not None:
                counts[station.id] = counts.get(station.id, 0) + 1
    return counts


def visit_color(visits: int, max_visits: int) -> str:
    """Grey for unvisited, then red -> yellow -> green by share of the busiest station."""

    if visits <= 0:
        return UNVISITED_COLOR
    normalized = visits / max(max_visits, 1)
    if normalized < 0.33:
        ratio = normalized / 0.33
        return f"rgb(255, {round_half_up(255 * ratio)}, 0)"
    if normalized < 0.67:
        ratio = (normalized - 0.33) / 0.34
        return f"rgb({round_half_up(255 * (1 - ratio))}, 255, 0)"
    return TOP_COLOR


def station_markers(
    rides: Sequence[Ride],
    stations: Sequence[Station],
    *,
    selected: Optional[Iterable[str]] = None,
    include_unvisited: bool = True,
    max_distance_km: float = 0.5,
) -> list[StationMarker]:
    """
    Markers for the visited-stations map.

    Addresses that fail name matching but carry "lat, lon" text are snapped to the nearest
    station within `max_distance_km`. `selected` limits the visited markers to those station
    ids (None keeps every visited station). Unvisited stations follow the selected ones.
    """

    resolver = StationResolver.with_coordinate_fallback(stations, max_distance_km=max_distance_km)
    counts = visit_counts(rides, resolver)
    max_visits = max(counts.values(), default=1)
    selected_ids = None if selected is None else set(selected)

    markers: list[StationMarker] = []
    for station in stations:
        visits = counts.get(station.id, 0)
        if visits == 0:
            continue
        if selected_ids is not None and station.id not in selected_ids:
            continue
        markers.append(StationMarker(station=station, visits=visits, color=visit_color(visits, max_visits)))

    if include_unvisited:
        for station in stations:
            if counts.get(station.id, 0) == 0:
                markers.append(StationMarker(station=station, visits=0, color=UNVISITED_COLOR))
    return markers


def route_weight(count: int, max_count: int) -> float:
    weight = 2 + (count / max(max_count, 1)) * 6
    return max(MIN_ROUTE_WEIGHT, min(MAX_ROUTE_WEIGHT, weight))


def route_lines(routes: Sequence[RouteStats], *, selected: Optional[Iterable[str]] = None) -> list[RouteLine]:
    """Straight polylines between route endpoints, thicker for more frequent routes."""

    keys = None if selected is None else set(selected)
    chosen = [r for r in routes if keys is None or r.key in keys]
    max_count = max((r.count for r in chosen), default=1)
    return [
        RouteLine(
            route=r,
            weight=route_weight(r.count, max_count),
            points=(
                (r.start_station.lat, r.start_station.long),
                (r.end_station.lat, r.end_station.long),
            ),
        )
        for r in chosen
    ]


def map_bounds(points: Iterable[tuple[float, float]]) -> Optional[MapBounds]:
    pts = list(points)
    if not pts:
        return None
    lats = [p[0] for p in pts]
    lons = [p[1] for p in pts]
    return MapBounds(south=min(lats), west=min(lons), north=max(lats), east=max(lons))


def marker_points(markers: Iterable[StationMarker]) -> list[tuple[float, float]]:
    return [(m.station.lat, m.station.long) for m in markers]


def route_points(lines: Iterable[RouteLine]) -> list[tuple[float, float]]:
    return [p for line in lines for p in line.points]
