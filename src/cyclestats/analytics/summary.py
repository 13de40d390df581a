from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

from cyclestats.analytics.resolver import StationResolver
from cyclestats.schemas.core import BusiestMonth, FastestJourney, Ride, Station, SummaryStats
from cyclestats.utils.dates import (
    MS_PER_DAY,
    MS_PER_MINUTE,
    TimezoneLike,
    duration_minutes,
    duration_ms,
    round_half_up,
    to_local,
    valid_epoch_ms,
)
from cyclestats.utils.geo import haversine_km


logger = logging.getLogger(__name__)

_PRICE_RE = re.compile(r"£?([\d.]+)")
E_BIKE_MARKERS = ("e-bike", "ebike", "electric")
FASTEST_MIN_DISTANCE_KM = 1.0


def parse_price(price: Optional[str]) -> Optional[float]:
    """
    Amount of a formatted price such as "£1.50".

    Returns None when no number can be read from the string.
    """

    if not price:
        return None
    m = _PRICE_RE.search(price)
    if m is None:
        return None
    # "1.2.3" style strings match the pattern but are not numbers; keep the leading part.
    parts = m.group(1).split(".")
    text = parts[0] if len(parts) == 1 else f"{parts[0]}.{parts[1]}"
    if not text or text == ".":
        return None
    try:
        return float(text)
    except ValueError:
        return None


def is_e_bike_ride(ride: Ride) -> bool:
    for item in ride.price_breakdown:
        if not item.title:
            continue
        title = item.title.lower()
        if any(marker in title for marker in E_BIKE_MARKERS):
            return True
    return False


@dataclass(frozen=True)
class _ResolvedRide:
    ride: Ride
    start: Optional[Station]
    end: Optional[Station]

    @property
    def distance_km(self) -> Optional[float]:
        if self.start is None or self.end is None:
            return None
        return haversine_km(self.start.lat, self.start.long, self.end.lat, self.end.long)


def _duration_stats(rides: Sequence[Ride]) -> tuple[Optional[int], Optional[int], Optional[int], int]:
    durations = [d for d in (duration_ms(r) for r in rides) if d is not None]
    if not durations:
        return None, None, None, 0
    avg = round_half_up(sum(durations) / len(durations) / MS_PER_MINUTE)
    lo = round_half_up(min(durations) / MS_PER_MINUTE)
    hi = round_half_up(max(durations) / MS_PER_MINUTE)
    total = sum(m for m in (duration_minutes(r) for r in rides) if m is not None)
    return avg, lo, hi, total


def _spend(rides: Iterable[Ride]) -> tuple[float, int]:
    amount = 0.0
    paid = 0
    for ride in rides:
        value = parse_price(ride.price)
        # Zero-priced rides (covered by a pass or membership) are not purchases.
        if value is None or value <= 0:
            continue
        amount += value
        paid += 1
    return amount, paid


def _favourite_station(resolved: Sequence[_ResolvedRide]) -> tuple[Optional[Station], int]:
    visits: dict[str, int] = {}
    by_id: dict[str, Station] = {}
    for rr in resolved:
        for station in (rr.start, rr.end):
            if station is None:
                continue
            visits[station.id] = visits.get(station.id, 0) + 1
            by_id.setdefault(station.id, station)

    favourite: Optional[Station] = None
    best = 0
    for station_id, count in visits.items():
        if count > best:
            best = count
            favourite = by_id[station_id]
    return favourite, best


def _streak_and_break(days: Sequence[date]) -> tuple[int, Optional[int]]:
    ordered = sorted(set(days))
    if not ordered:
        return 0, None

    longest_streak = 1
    current = 1
    longest_break: Optional[int] = None
    for prev, curr in zip(ordered, ordered[1:]):
        gap = (curr - prev).days
        if gap == 1:
            current += 1
            longest_streak = max(longest_streak, current)
        else:
            current = 1
        between = gap - 1
        if longest_break is None or between > longest_break:
            longest_break = between
    return longest_streak, longest_break


def summarize(
    rides: Sequence[Ride],
    stations: Sequence[Station],
    *,
    now: Optional[datetime] = None,
    tz: TimezoneLike = None,
    resolver: Optional[StationResolver] = None,
    fastest_min_distance_km: float = FASTEST_MIN_DISTANCE_KM,
) -> SummaryStats:
    """
    Headline statistics for a ride history.

    Every metric skips the rides that lack the fields it needs, so partial data degrades
    individual figures instead of failing the whole summary. Calendar metrics use local
    dates in `tz` (UTC when omitted).
    """

    rides = list(rides)
    resolver = resolver or StationResolver(stations)
    now = now or datetime.now(timezone.utc)

    avg_min, min_min, max_min, total_minutes = _duration_stats(rides)

    starts = [ms for ms in (valid_epoch_ms(r.start_time_ms) for r in rides) if ms is not None]
    earliest_ride: Optional[datetime] = None
    days_ago: Optional[int] = None
    if starts:
        first_ms = min(starts)
        earliest_ride = to_local(first_ms, tz)
        now_ms = int(now.timestamp() * 1000)
        days_ago = (now_ms - first_ms) // MS_PER_DAY

    spent_amount, spent_rides = _spend(rides)

    resolved = [
        _ResolvedRide(ride=r, start=resolver.resolve(r.start_address), end=resolver.resolve(r.end_address))
        for r in rides
    ]
    visited_ids = {s.id for rr in resolved for s in (rr.start, rr.end) if s is not None}
    favourite, favourite_visits = _favourite_station(resolved)

    longest_km: Optional[float] = None
    longest_date: Optional[datetime] = None
    total_km = 0.0
    fastest: Optional[FastestJourney] = None
    for rr in resolved:
        km = rr.distance_km
        if km is None:
            continue
        total_km += km
        if longest_km is None or km > longest_km:
            longest_km = km
            start_ms = valid_epoch_ms(rr.ride.start_time_ms)
            longest_date = None if start_ms is None else to_local(start_ms, tz)

        minutes = duration_minutes(rr.ride)
        # Short hops give noisy speeds once durations are rounded to whole minutes.
        if minutes is None or minutes <= 0 or km < fastest_min_distance_km:
            continue
        speed = km / minutes * 60
        if fastest is None or speed > fastest.speed_kph:
            fastest = FastestJourney(duration_minutes=minutes, distance_km=km, speed_kph=speed)

    per_day: dict[date, int] = {}
    per_month: dict[tuple[int, int], int] = {}
    for ms in starts:
        local = to_local(ms, tz)
        d = local.date()
        per_day[d] = per_day.get(d, 0) + 1
        month_key = (local.year, local.month)
        per_month[month_key] = per_month.get(month_key, 0) + 1

    most_in_day = 0
    most_in_day_date: Optional[date] = None
    for d, count in per_day.items():
        if count > most_in_day:
            most_in_day = count
            most_in_day_date = d

    busiest: Optional[BusiestMonth] = None
    for (year, month), count in per_month.items():
        if busiest is None or count > busiest.count:
            busiest = BusiestMonth(year=year, month=month, count=count)

    longest_streak, longest_break = _streak_and_break(list(per_day))

    logger.debug("Summarized %d rides (%d resolved stations)", len(rides), len(visited_ids))

    return SummaryStats(
        total_rides=len(rides),
        avg_duration_minutes=avg_min,
        min_duration_minutes=min_min,
        max_duration_minutes=max_min,
        earliest_ride=earliest_ride,
        days_ago=days_ago,
        total_spent_amount=round(spent_amount, 2),
        total_spent_rides=spent_rides,
        stations_visited=len(visited_ids),
        total_stations=len(stations),
        e_bike_trips=sum(1 for r in rides if is_e_bike_ride(r)),
        favourite_station=favourite,
        favourite_station_visits=favourite_visits,
        longest_ride_distance_km=longest_km,
        longest_ride_date=longest_date,
        most_rides_in_day=most_in_day,
        most_rides_in_day_date=most_in_day_date,
        total_distance_km=total_km,
        fastest_journey=fastest,
        longest_streak=longest_streak,
        longest_break_days=longest_break,
        busiest_month=busiest,
        total_time_cycling_minutes=total_minutes,
    )
