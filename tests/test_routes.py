from __future__ import annotations

import math

import pytest

from cyclestats.analytics.resolver import StationResolver
from cyclestats.analytics.routes import aggregate_routes, routes_frame, sort_routes
from cyclestats.utils.geo import haversine_km


def test_single_ride_produces_one_route(stations, make_ride) -> None:
    routes = aggregate_routes([make_ride("Station A", "Station B", 0, 600_000)], stations)
    assert len(routes) == 1
    route = routes[0]
    assert route.key == "1-2"
    assert route.count == 1
    assert route.avg_duration_minutes == 10
    assert route.min_duration_minutes == 10
    assert route.max_duration_minutes == 10
    assert math.isclose(route.distance_km, haversine_km(51.5, -0.1, 51.51, -0.09))


def test_direction_matters(stations, make_ride) -> None:
    routes = aggregate_routes(
        [make_ride("Station A", "Station B"), make_ride("Station B", "Station A")],
        stations,
    )
    assert sorted(r.key for r in routes) == ["1-2", "2-1"]


def test_running_mean_is_rounded_after_each_ride(stations, make_ride) -> None:
    rides = [
        make_ride(start_ms=0, end_ms=10 * 60_000),
        make_ride(start_ms=0, end_ms=11 * 60_000),
        make_ride(start_ms=0, end_ms=10 * 60_000),
    ]
    (route,) = aggregate_routes(rides, stations)
    # 10 -> round(10.5) = 11 -> round((11 * 2 + 10) / 3) = 11, while the exact mean rounds to 10.
    assert route.avg_duration_minutes == 11
    assert route.min_duration_minutes == 10
    assert route.max_duration_minutes == 11


def test_rides_without_duration_still_count(stations, make_ride) -> None:
    rides = [make_ride(start_ms=None, end_ms=None), make_ride(start_ms=0, end_ms=5 * 60_000)]
    (route,) = aggregate_routes(rides, stations)
    assert route.count == 2
    assert route.avg_duration_minutes == 5

    (only_unknown,) = aggregate_routes([make_ride(start_ms=None)], stations)
    assert only_unknown.count == 1
    assert only_unknown.avg_duration_minutes is None
    assert only_unknown.min_duration_minutes is None


def test_negative_duration_is_treated_as_unknown(stations, make_ride) -> None:
    (route,) = aggregate_routes([make_ride(start_ms=600_000, end_ms=0)], stations)
    assert route.count == 1
    assert route.avg_duration_minutes is None


def test_count_is_conserved_over_resolvable_rides(stations, make_ride) -> None:
    rides = [
        make_ride("Station A", "Station B"),
        make_ride("Station A", "Nowhere at all"),
        make_ride(None, "Station B"),
        make_ride("Station B", "Station D"),
        make_ride("Station A", "Station B"),
    ]
    resolver = StationResolver(stations)
    both = sum(
        1 for r in rides if resolver.resolve(r.start_address) and resolver.resolve(r.end_address)
    )
    routes = aggregate_routes(rides, stations, resolver=resolver)
    assert sum(r.count for r in routes) == both == 3


def test_aggregation_is_idempotent(stations, make_ride) -> None:
    rides = [make_ride("Station A", "Station B"), make_ride("Station B", "Station D")]
    assert aggregate_routes(rides, stations) == aggregate_routes(rides, stations)


def test_sort_routes_cycles_through_directions(stations, make_ride) -> None:
    rides = [
        make_ride("Station A", "Station B"),
        make_ride("Station B", "Station D"),
        make_ride("Station B", "Station D"),
    ]
    routes = aggregate_routes(rides, stations)
    assert [r.key for r in sort_routes(routes, "count", "desc")] == ["2-3", "1-2"]
    assert [r.key for r in sort_routes(routes, "count", "asc")] == ["1-2", "2-3"]
    assert [r.key for r in sort_routes(routes, "count", "none")] == ["1-2", "2-3"]
    assert [r.key for r in sort_routes(routes, "start_station", "asc")] == ["1-2", "2-3"]

    with pytest.raises(ValueError):
        sort_routes(routes, "colour", "asc")  # type: ignore[arg-type]


def test_routes_frame_has_expected_columns(stations, make_ride) -> None:
    df = routes_frame(aggregate_routes([make_ride(start_ms=None)], stations))
    assert list(df.columns) == [
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
    assert df["avg_duration_minutes"].isna().all()
    assert routes_frame([]).empty
