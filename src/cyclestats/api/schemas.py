from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class HistogramDefaultsOut(BaseModel):
    duration: str
    time_of_day: str
    calendar: str


class AppConfigOut(BaseModel):
    app_name: str
    timezone: str
    station_feed_url: str
    histograms: HistogramDefaultsOut
    coordinate_match_radius_km: float
    fastest_min_distance_km: float


class StationOut(BaseModel):
    id: str
    name: str
    terminal_name: str
    lat: float
    long: float
    nb_bikes: int = 0
    nb_e_bikes: int = 0
    nb_empty_docks: int = 0
    nb_docks: int = 0


class RidesInfoOut(BaseModel):
    stored: bool
    ride_count: int
    saved_at_ms: Optional[int] = None


class RouteOut(BaseModel):
    key: str = Field(..., examples=["1-2"])
    start_station: StationOut
    end_station: StationOut
    count: int
    avg_duration_minutes: Optional[int] = None
    min_duration_minutes: Optional[int] = None
    max_duration_minutes: Optional[int] = None
    distance_km: float


class StationStatsOut(BaseModel):
    station: StationOut
    pickups: int
    dropoffs: int
    total: int
    net: int


class HistogramOut(BaseModel):
    available: bool
    axis: str = Field(..., examples=["duration", "time_of_day", "calendar"])
    bucket_width: str
    labels: list[str] = Field(default_factory=list)
    counts: list[int] = Field(default_factory=list)
    total: int = 0


class FastestJourneyOut(BaseModel):
    duration_minutes: int
    distance_km: float
    speed_kph: float


class BusiestMonthOut(BaseModel):
    year: int
    month: int
    count: int


class SummaryOut(BaseModel):
    total_rides: int
    avg_duration_minutes: Optional[int] = None
    min_duration_minutes: Optional[int] = None
    max_duration_minutes: Optional[int] = None
    earliest_ride: Optional[datetime] = None
    days_ago: Optional[int] = None
    total_spent_amount: float
    total_spent_rides: int
    stations_visited: int
    total_stations: int
    e_bike_trips: int
    favourite_station: Optional[StationOut] = None
    favourite_station_visits: int = 0
    longest_ride_distance_km: Optional[float] = None
    longest_ride_date: Optional[datetime] = None
    most_rides_in_day: int
    most_rides_in_day_date: Optional[date] = None
    total_distance_km: float
    fastest_journey: Optional[FastestJourneyOut] = None
    longest_streak: int
    longest_break_days: Optional[int] = None
    busiest_month: Optional[BusiestMonthOut] = None
    total_time_cycling_minutes: int


class MapBoundsOut(BaseModel):
    south: float
    west: float
    north: float
    east: float


class StationMarkerOut(BaseModel):
    station: StationOut
    visits: int
    color: str = Field(..., examples=["#9CA3AF", "rgb(255, 128, 0)"])


class StationMarkersOut(BaseModel):
    items: list[StationMarkerOut] = Field(default_factory=list)
    bounds: Optional[MapBoundsOut] = None


class RouteLineOut(BaseModel):
    route: RouteOut
    weight: float
    points: list[list[float]]


class RouteLinesOut(BaseModel):
    items: list[RouteLineOut] = Field(default_factory=list)
    bounds: Optional[MapBoundsOut] = None
