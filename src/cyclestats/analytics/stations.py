from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence

import pandas as pd

from cyclestats.analytics.resolver import StationResolver
from cyclestats.analytics.routes import SortDirection
from cyclestats.schemas.core import Ride, Station, StationStats


StationSortField = Literal["name", "pickups", "dropoffs", "total", "net"]

STATION_SORT_FIELDS = ("name", "pickups", "dropoffs", "total", "net")


@dataclass
class _Counter:
    pickups: int = 0
    dropoffs: int = 0


def aggregate_stations(
    rides: Iterable[Ride],
    stations: Sequence[Station],
    *,
    resolver: Optional[StationResolver] = None,
) -> list[StationStats]:
    """
    Pickup/dropoff counts for every station of the directory, in directory order.

    Zero-activity stations are included; use `visited_stations` to drop them.
    """

    resolver = resolver or StationResolver(stations)
    counters: dict[str, _Counter] = {s.id: _Counter() for s in stations}

    for ride in rides:
        start = resolver.resolve(ride.start_address)
        if start is not None and start.id in counters:
            counters[start.id].pickups += 1
        end = resolver.resolve(ride.end_address)
        if end is not None and end.id in counters:
            counters[end.id].dropoffs += 1

    out: list[StationStats] = []
    seen: set[str] = set()
    for station in stations:
        # Duplicate ids in a malformed snapshot would otherwise double count.
        if station.id in seen:
            continue
        seen.add(station.id)
        c = counters[station.id]
        out.append(
            StationStats(
                station=station,
                pickups=c.pickups,
                dropoffs=c.dropoffs,
                total=c.pickups + c.dropoffs,
                net=c.pickups - c.dropoffs,
            )
        )
    return out


def visited_stations(stats: Iterable[StationStats]) -> list[StationStats]:
    return [s for s in stats if s.total > 0]


def _station_sort_value(stats: StationStats, field: str) -> int | str:
    if field == "name":
        return stats.station.name.lower()
    if field == "pickups":
        return stats.pickups
    if field == "dropoffs":
        return stats.dropoffs
    if field == "total":
        return stats.total
    if field == "net":
        return stats.net
    raise ValueError(f"Unsupported station sort field: {field}")


def sort_stations(
    stats: Sequence[StationStats],
    field: StationSortField = "total",
    direction: SortDirection = "desc",
) -> list[StationStats]:
    if field not in STATION_SORT_FIELDS:
        raise ValueError(f"Unsupported station sort field: {field}")
    if direction not in ("desc", "asc", "none"):
        raise ValueError(f"Unsupported sort direction: {direction}")
    if direction == "none":
        return list(stats)
    return sorted(stats, key=lambda s: _station_sort_value(s, field), reverse=direction == "desc")


def stations_frame(stats: Sequence[StationStats]) -> pd.DataFrame:
    columns = ["station_id", "name", "terminal_name", "lat", "long", "pickups", "dropoffs", "total", "net"]
    rows = [
        {
            "station_id": s.station.id,
            "name": s.station.name,
            "terminal_name": s.station.terminal_name,
            "lat": s.station.lat,
            "long": s.station.long,
            "pickups": s.pickups,
            "dropoffs": s.dropoffs,
            "total": s.total,
            "net": s.net,
        }
        for s in stats
    ]
    return pd.DataFrame(rows, columns=columns)
