from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional, Sequence

from cyclestats.schemas.core import Station
from cyclestats.utils.geo import haversine_km


logger = logging.getLogger(__name__)

# A matcher receives the normalized (lowercased, trimmed) address and the station directory.
StationMatcher = Callable[[str, Sequence[Station]], Optional[Station]]

_TERMINAL_RE = re.compile(r"\d{6}")
_TOKEN_SPLIT_RE = re.compile(r"[,\s]+")
_COORDS_RE = re.compile(r"(-?\d+\.?\d*),\s*(-?\d+\.?\d*)")

MIN_WORD_MATCHES = 2


def normalize_address(address: str) -> str:
    return address.lower().strip()


def match_by_containment(address: str, stations: Sequence[Station]) -> Optional[Station]:
    """
    First station whose lowercased name contains the address, or is contained in it.

    Directory order decides between candidates, so a short station name that happens to be
    a substring of a longer one (or of the address) can win over the intended station.
    """

    for station in stations:
        name = station.name.lower()
        if name in address or address in name:
            return station
    return None


def match_by_terminal(address: str, stations: Sequence[Station]) -> Optional[Station]:
    m = _TERMINAL_RE.search(address)
    if m is None:
        return None
    terminal = m.group(0)
    for station in stations:
        if station.terminal_name == terminal:
            return station
    return None


def _tokens(text: str) -> list[str]:
    return [t for t in _TOKEN_SPLIT_RE.split(text) if t]


def match_by_word_overlap(address: str, stations: Sequence[Station]) -> Optional[Station]:
    address_words = [w for w in _tokens(address) if len(w) > 2]
    if len(address_words) < MIN_WORD_MATCHES:
        return None

    for station in stations:
        station_words = _tokens(station.name.lower())
        matching = [aw for aw in address_words if any(sw in aw or aw in sw for sw in station_words)]
        if len(matching) >= MIN_WORD_MATCHES:
            return station
    return None


DEFAULT_MATCHERS: tuple[StationMatcher, ...] = (
    match_by_containment,
    match_by_terminal,
    match_by_word_overlap,
)


def parse_coordinates(address: str) -> Optional[tuple[float, float]]:
    m = _COORDS_RE.search(address)
    if m is None:
        return None
    return float(m.group(1)), float(m.group(2))


def nearest_station(
    lat: float, lon: float, stations: Iterable[Station], *, max_distance_km: float
) -> Optional[Station]:
    """Closest station strictly within `max_distance_km`, first one wins on equal distance."""

    nearest: Optional[Station] = None
    best = max_distance_km
    for station in stations:
        d = haversine_km(lat, lon, station.lat, station.long)
        if d < best:
            best = d
            nearest = station
    return nearest


def make_coordinate_matcher(max_distance_km: float = 0.5) -> StationMatcher:
    def match_by_coordinates(address: str, stations: Sequence[Station]) -> Optional[Station]:
        coords = parse_coordinates(address)
        if coords is None:
            return None
        return nearest_station(coords[0], coords[1], stations, max_distance_km=max_distance_km)

    return match_by_coordinates


class StationResolver:
    """
    Map free-text ride addresses to stations of one directory snapshot.

    Matchers are tried in order and the first hit wins. Results are memoised per distinct
    address, so one resolver should live for a single computation pass over one snapshot.
    """

    def __init__(
        self,
        stations: Sequence[Station],
        *,
        matchers: Sequence[StationMatcher] = DEFAULT_MATCHERS,
    ) -> None:
        self._stations = tuple(stations)
        self._matchers = tuple(matchers)
        self._memo: dict[str, Optional[Station]] = {}

    @classmethod
    def with_coordinate_fallback(
        cls, stations: Sequence[Station], *, max_distance_km: float = 0.5
    ) -> "StationResolver":
        return cls(stations, matchers=DEFAULT_MATCHERS + (make_coordinate_matcher(max_distance_km),))

    @property
    def stations(self) -> tuple[Station, ...]:
        return self._stations

    def resolve(self, address: Optional[str]) -> Optional[Station]:
        if not address or not self._stations:
            return None
        if address in self._memo:
            return self._memo[address]

        normalized = normalize_address(address)
        found: Optional[Station] = None
        if normalized:
            for matcher in self._matchers:
                found = matcher(normalized, self._stations)
                if found is not None:
                    break

        if found is None:
            logger.debug("Unresolved address: %r", address)
        self._memo[address] = found
        return found


def resolve_station(address: Optional[str], stations: Sequence[Station]) -> Optional[Station]:
    return StationResolver(stations).resolve(address)
