from __future__ import annotations

# `Literal` restricts query parameters to the documented bucket widths and sort options,
# so FastAPI rejects anything else with a 422 before our code runs.
from typing import Literal, Optional

# FastAPI primitives:
# - `APIRouter` groups endpoints so the app factory can include them cleanly.
# - `Depends` injects the service per request (no global variables needed).
# - `HTTPException` turns adapter errors into proper HTTP status codes.
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool

from cyclestats.api.schemas import (
    AppConfigOut,
    HistogramOut,
    RidesInfoOut,
    RouteLinesOut,
    RouteOut,
    StationMarkersOut,
    StationOut,
    StationStatsOut,
    SummaryOut,
)
# Dataflow: HTTP request -> route handler -> RideAnalyticsService -> analytics -> dict -> Pydantic -> JSON.
from cyclestats.api.service import RideAnalyticsService, station_payload
from cyclestats.ingestion.rides import RideValidationError
from cyclestats.ingestion.station_feed import StationFeedError


router = APIRouter()

DurationWidthParam = Literal["15s", "30s", "1m", "2m", "5m"]
TimeOfDayWidthParam = Literal["15m", "30m", "1h", "2h"]
CalendarWidthParam = Literal["1d", "3d", "1w", "1m", "3m", "6m", "1y"]
DirectionParam = Literal["desc", "asc", "none"]
RouteSortParam = Literal[
    "start_station", "end_station", "count", "distance", "avg_duration", "min_duration", "max_duration"
]
StationSortParam = Literal["name", "pickups", "dropoffs", "total", "net"]


# Dependency provider: the service is built once in `create_app` and stored on `app.state`.
def get_service(request: Request) -> RideAnalyticsService:
    return request.app.state.analytics_service  # type: ignore[attr-defined]


def _split_ids(value: Optional[str]) -> Optional[list[str]]:
    # Comma-separated ids; an absent parameter means "no filter".
    if value is None:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def _station_feed_failed(e: StationFeedError) -> HTTPException:
    return HTTPException(status_code=502, detail=str(e))


@router.get("/config", response_model=AppConfigOut)
def get_config(service: RideAnalyticsService = Depends(get_service)) -> AppConfigOut:
    cfg = service.config
    return AppConfigOut(
        app_name=cfg.app.name,
        timezone=cfg.analytics.timezone,
        station_feed_url=cfg.station_feed.url,
        histograms={
            "duration": cfg.analytics.histograms.duration,
            "time_of_day": cfg.analytics.histograms.time_of_day,
            "calendar": cfg.analytics.histograms.calendar,
        },
        coordinate_match_radius_km=cfg.analytics.coordinate_match_radius_km,
        fastest_min_distance_km=cfg.analytics.fastest_min_distance_km,
    )


@router.get("/stations", response_model=list[StationOut])
def list_stations(service: RideAnalyticsService = Depends(get_service)) -> list[dict]:
    try:
        return [station_payload(s) for s in service.stations()]
    except StationFeedError as e:
        raise _station_feed_failed(e) from e


@router.get("/rides", response_model=RidesInfoOut)
def rides_info(service: RideAnalyticsService = Depends(get_service)) -> dict:
    return service.rides_info()


# The body is read raw so malformed JSON gets the same message as a failed schema check.
# Validation and the file write run in the threadpool, off the event loop.
@router.post("/rides", response_model=RidesInfoOut)
async def save_rides(request: Request, service: RideAnalyticsService = Depends(get_service)) -> dict:
    body = (await request.body()).decode("utf-8", errors="replace")
    try:
        return await run_in_threadpool(service.save_rides_json, body)
    except RideValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/rides", status_code=204)
def clear_rides(service: RideAnalyticsService = Depends(get_service)) -> Response:
    service.clear_rides()
    return Response(status_code=204)


@router.get("/analytics/summary", response_model=SummaryOut)
def summary(service: RideAnalyticsService = Depends(get_service)) -> dict:
    try:
        return service.summary()
    except StationFeedError as e:
        raise _station_feed_failed(e) from e


@router.get("/analytics/routes", response_model=list[RouteOut])
def routes(
    sort: RouteSortParam = "count",
    direction: DirectionParam = "desc",
    service: RideAnalyticsService = Depends(get_service),
) -> list[dict]:
    try:
        return service.routes(sort=sort, direction=direction)
    except StationFeedError as e:
        raise _station_feed_failed(e) from e


@router.get("/analytics/stations", response_model=list[StationStatsOut])
def station_stats(
    sort: StationSortParam = "total",
    direction: DirectionParam = "desc",
    visited_only: bool = True,
    service: RideAnalyticsService = Depends(get_service),
) -> list[dict]:
    try:
        return service.station_stats(sort=sort, direction=direction, visited_only=visited_only)
    except StationFeedError as e:
        raise _station_feed_failed(e) from e


# Histograms need no station data, so they keep working when the feed is down.
@router.get("/analytics/histograms/duration", response_model=HistogramOut)
def duration_histogram(
    width: Optional[DurationWidthParam] = None,
    service: RideAnalyticsService = Depends(get_service),
) -> dict:
    return service.duration_histogram(width)


@router.get("/analytics/histograms/time-of-day", response_model=HistogramOut)
def time_of_day_histogram(
    width: Optional[TimeOfDayWidthParam] = None,
    service: RideAnalyticsService = Depends(get_service),
) -> dict:
    return service.time_of_day_histogram(width)


@router.get("/analytics/histograms/calendar", response_model=HistogramOut)
def calendar_histogram(
    width: Optional[CalendarWidthParam] = None,
    service: RideAnalyticsService = Depends(get_service),
) -> dict:
    return service.calendar_histogram(width)


@router.get("/map/stations", response_model=StationMarkersOut)
def map_stations(
    selected: Optional[str] = Query(default=None, description="Comma-separated station ids"),
    include_unvisited: bool = True,
    service: RideAnalyticsService = Depends(get_service),
) -> dict:
    try:
        return service.map_stations(selected=_split_ids(selected), include_unvisited=include_unvisited)
    except StationFeedError as e:
        raise _station_feed_failed(e) from e


@router.get("/map/routes", response_model=RouteLinesOut)
def map_routes(
    selected: Optional[str] = Query(default=None, description="Comma-separated route keys"),
    service: RideAnalyticsService = Depends(get_service),
) -> dict:
    try:
        return service.map_routes(selected=_split_ids(selected))
    except StationFeedError as e:
        raise _station_feed_failed(e) from e
