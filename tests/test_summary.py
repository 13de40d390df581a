from __future__ import annotations

import math
from datetime import date, datetime, timezone

import pytest

from cyclestats.analytics.summary import is_e_bike_ride, parse_price, summarize
from cyclestats.utils.geo import haversine_km


def _utc_ms(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> int:
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.mark.parametrize(
    ("text", "expected"),
    [("£1.50", 1.5), ("£0.00", 0.0), ("3", 3.0), ("1.2.3", 1.2), ("free", None), (None, None), ("", None)],
)
def test_parse_price(text, expected) -> None:
    assert parse_price(text) == expected


def test_e_bike_detection_reads_breakdown_titles(make_ride) -> None:
    assert is_e_bike_ride(make_ride(breakdown=(("E-bike ride fee", "£1.00"),)))
    assert is_e_bike_ride(make_ride(breakdown=(("Electric bike", None),)))
    assert not is_e_bike_ride(make_ride(breakdown=(("Hire fee", "£1.65"), (None, "£0.00"))))


@pytest.fixture
def history(make_ride):
    return [
        make_ride("Station A", "Station B", _utc_ms(2024, 1, 1), _utc_ms(2024, 1, 1, 12, 10), price="£1.50"),
        make_ride(
            "Station A",
            "Station B",
            _utc_ms(2024, 1, 2),
            _utc_ms(2024, 1, 2, 12, 5),
            price="£0.00",
            breakdown=(("E-bike ride fee", "£1.00"),),
        ),
        # Under a kilometre, so never the fastest journey.
        make_ride("Station A", "Station D", _utc_ms(2024, 1, 5), _utc_ms(2024, 1, 5, 12, 1)),
        make_ride(None, "Station A", None, _utc_ms(2024, 1, 5, 13)),
    ]


def test_summary_of_a_small_history(history, stations) -> None:
    now = datetime(2024, 1, 11, 11, 0, tzinfo=timezone.utc)
    s = summarize(history, stations, now=now)

    assert s.total_rides == 4
    assert (s.avg_duration_minutes, s.min_duration_minutes, s.max_duration_minutes) == (5, 1, 10)
    assert s.total_time_cycling_minutes == 16

    assert s.earliest_ride == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert s.days_ago == 9

    assert s.total_spent_amount == 1.5
    assert s.total_spent_rides == 1
    assert s.e_bike_trips == 1

    assert s.stations_visited == 3
    assert s.total_stations == 3
    assert s.favourite_station is not None and s.favourite_station.id == "1"
    assert s.favourite_station_visits == 4

    ab = haversine_km(51.5, -0.1, 51.51, -0.09)
    ad = haversine_km(51.5, -0.1, 51.5081, -0.1)
    assert math.isclose(s.longest_ride_distance_km, ab)
    assert s.longest_ride_date == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert math.isclose(s.total_distance_km, 2 * ab + ad)

    assert s.fastest_journey is not None
    assert s.fastest_journey.duration_minutes == 5
    assert math.isclose(s.fastest_journey.speed_kph, ab / 5 * 60)

    assert s.most_rides_in_day == 1
    assert s.most_rides_in_day_date == date(2024, 1, 1)
    assert s.longest_streak == 2
    assert s.longest_break_days == 2
    assert s.busiest_month is not None
    assert (s.busiest_month.year, s.busiest_month.month, s.busiest_month.count) == (2024, 1, 3)


def test_summary_of_no_rides(stations) -> None:
    s = summarize([], stations)
    assert s.total_rides == 0
    assert s.avg_duration_minutes is None
    assert s.earliest_ride is None
    assert s.days_ago is None
    assert s.total_spent_amount == 0
    assert s.favourite_station is None
    assert s.fastest_journey is None
    assert s.longest_streak == 0
    assert s.longest_break_days is None
    assert s.busiest_month is None
    assert s.total_time_cycling_minutes == 0


def test_single_day_has_streak_of_one_and_no_break(make_ride, stations) -> None:
    rides = [make_ride(start_ms=_utc_ms(2024, 3, 3), end_ms=_utc_ms(2024, 3, 3, 12, 20))] * 2
    s = summarize(rides, stations)
    assert s.longest_streak == 1
    assert s.longest_break_days is None
    assert s.most_rides_in_day == 2


def test_consecutive_days_have_zero_break(make_ride, stations) -> None:
    rides = [make_ride(start_ms=_utc_ms(2024, 3, d), end_ms=_utc_ms(2024, 3, d, 12, 20)) for d in (3, 4, 5)]
    s = summarize(rides, stations)
    assert s.longest_streak == 3
    assert s.longest_break_days == 0


def test_calendar_metrics_follow_the_local_date(make_ride, stations) -> None:
    # 23:30 UTC on 31 March 2024 is already 1 April in London (BST).
    rides = [make_ride(start_ms=_utc_ms(2024, 3, 31, 23, 30), end_ms=_utc_ms(2024, 4, 1, 0, 0))]
    utc = summarize(rides, stations)
    london = summarize(rides, stations, tz="Europe/London")
    assert utc.busiest_month is not None and utc.busiest_month.month == 3
    assert london.busiest_month is not None and london.busiest_month.month == 4
    assert london.most_rides_in_day_date == date(2024, 4, 1)


def test_ties_go_to_the_first_reached(make_ride, stations) -> None:
    rides = [
        # Later date first: ties follow ride order, not the calendar.
        make_ride("Station B", "Station A", _utc_ms(2024, 2, 3), _utc_ms(2024, 2, 3, 12, 10)),
        make_ride("Station A", "Station B", _utc_ms(2024, 1, 10), _utc_ms(2024, 1, 10, 12, 10)),
    ]
    s = summarize(rides, stations)

    assert s.favourite_station is not None and s.favourite_station.id == "2"
    assert s.favourite_station_visits == 2
    assert s.most_rides_in_day == 1
    assert s.most_rides_in_day_date == date(2024, 2, 3)
    assert s.busiest_month is not None
    assert (s.busiest_month.year, s.busiest_month.month, s.busiest_month.count) == (2024, 2, 1)


def test_fastest_journey_skips_rides_rounding_to_zero_minutes(make_ride, stations) -> None:
    start = _utc_ms(2024, 5, 1)
    # Over a kilometre in 20 seconds rounds to 0 minutes.
    instant = make_ride("Station A", "Station B", start, start + 20_000)
    s = summarize([instant], stations)
    assert s.fastest_journey is None

    steady = make_ride("Station A", "Station B", start, start + 10 * 60_000)
    s = summarize([instant, steady], stations)
    assert s.fastest_journey is not None
    assert s.fastest_journey.duration_minutes == 10


def test_out_of_range_timestamps_do_not_break_the_summary(make_ride, stations) -> None:
    rides = [
        make_ride(start_ms=_utc_ms(2024, 1, 1), end_ms=_utc_ms(2024, 1, 1, 12, 10)),
        make_ride(start_ms=10**20, end_ms=10**20 + 600_000),
    ]
    s = summarize(rides, stations, now=datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc))
    assert s.total_rides == 2
    assert s.days_ago == 1
    assert (s.avg_duration_minutes, s.total_time_cycling_minutes) == (10, 10)
    assert s.busiest_month is not None and s.busiest_month.count == 1
    assert s.longest_ride_date == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
