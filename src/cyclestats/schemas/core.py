from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class PriceBreakdownItem:
    title: Optional[str]
    amount: Optional[str]


@dataclass(frozen=True)
class PaymentMethod:
    card_type: Optional[str] = None
    last_four: Optional[str] = None
    client_payment_method: Optional[str] = None


@dataclass(frozen=True)
class Ride:
    ride_id: Optional[str]
    start_time_ms: Optional[int]
    end_time_ms: Optional[int]
    start_address: Optional[str]
    end_address: Optional[str]
    price: Optional[str] = None
    price_breakdown: tuple[PriceBreakdownItem, ...] = ()
    payment_method: Optional[PaymentMethod] = None


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    terminal_name: str
    lat: float
    long: float
    nb_bikes: int = 0
    nb_standard_bikes: int = 0
    nb_e_bikes: int = 0
    nb_empty_docks: int = 0
    nb_docks: int = 0
    installed: bool = True
    locked: bool = False
    temporary: bool = False
    install_date: Optional[int] = None
    removal_date: Optional[int] = None


@dataclass(frozen=True)
class RouteStats:
    start_station: Station
    end_station: Station
    count: int
    avg_duration_minutes: Optional[int]
    min_duration_minutes: Optional[int]
    max_duration_minutes: Optional[int]
    distance_km: float

    @property
    def key(self) -> str:
        return f"{self.start_station.id}-{self.end_station.id}"


@dataclass(frozen=True)
class StationStats:
    station: Station
    pickups: int = 0
    dropoffs: int = 0
    total: int = 0
    net: int = 0


@dataclass(frozen=True)
class Histogram:
    axis: str
    bucket_width: str
    labels: tuple[str, ...]
    counts: tuple[int, ...]


@dataclass(frozen=True)
class FastestJourney:
    duration_minutes: int
    distance_km: float
    speed_kph: float


@dataclass(frozen=True)
class BusiestMonth:
    year: int
    month: int  # 1-12
    count: int


@dataclass(frozen=True)
class SummaryStats:
    total_rides: int
    avg_duration_minutes: Optional[int]
    min_duration_minutes: Optional[int]
    max_duration_minutes: Optional[int]
    earliest_ride: Optional[datetime]
    days_ago: Optional[int]
    total_spent_amount: float
    total_spent_rides: int
    stations_visited: int
    total_stations: int
    e_bike_trips: int
    favourite_station: Optional[Station]
    favourite_station_visits: int
    longest_ride_distance_km: Optional[float]
    longest_ride_date: Optional[datetime]
    most_rides_in_day: int
    most_rides_in_day_date: Optional[date]
    total_distance_km: float
    fastest_journey: Optional[FastestJourney]
    longest_streak: int
    longest_break_days: Optional[int]
    busiest_month: Optional[BusiestMonth]
    total_time_cycling_minutes: int


@dataclass(frozen=True)
class StationMarker:
    station: Station
    visits: int
    color: str


@dataclass(frozen=True)
class RouteLine:
    route: RouteStats
    weight: float
    points: tuple[tuple[float, float], tuple[float, float]]


@dataclass(frozen=True)
class MapBounds:
    south: float
    west: float
    north: float
    east: float
