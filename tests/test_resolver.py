from __future__ import annotations

from cyclestats.analytics.resolver import (
    StationResolver,
    match_by_word_overlap,
    parse_coordinates,
    resolve_station,
)
from cyclestats.schemas.core import Station


TFL_STATIONS = [
    Station(id="1", name="River Street , Clerkenwell", terminal_name="001023", lat=51.529163, long=-0.10997),
    Station(id="2", name="Phillimore Gardens, Kensington", terminal_name="001018", lat=51.499606, long=-0.197574),
    Station(id="3", name="Christopher Street, Liverpool Street", terminal_name="001012", lat=51.521283, long=-0.084605),
]


def test_containment_matches_case_insensitively() -> None:
    station = resolve_station("  PHILLIMORE GARDENS, KENSINGTON ", TFL_STATIONS)
    assert station is not None and station.id == "2"


def test_containment_matches_when_station_name_contains_address() -> None:
    station = resolve_station("Christopher Street", TFL_STATIONS)
    assert station is not None and station.id == "3"


def test_terminal_code_is_used_when_names_do_not_match() -> None:
    station = resolve_station("Dock 001012 somewhere in EC2", TFL_STATIONS)
    assert station is not None and station.id == "3"


def test_word_overlap_needs_two_matching_words() -> None:
    station = resolve_station("Phillimore Gdns Kensington W8", TFL_STATIONS)
    assert station is not None and station.id == "2"
    assert resolve_station("Phillimore Road", TFL_STATIONS) is None


def test_word_overlap_ignores_short_tokens() -> None:
    assert match_by_word_overlap("st, ec river", TFL_STATIONS) is None


def test_unresolvable_and_empty_addresses_return_none() -> None:
    assert resolve_station("Buckingham Palace", TFL_STATIONS) is None
    assert resolve_station(None, TFL_STATIONS) is None
    assert resolve_station("", TFL_STATIONS) is None
    assert resolve_station("   ", TFL_STATIONS) is None
    assert resolve_station("River Street , Clerkenwell", []) is None


def test_first_station_in_directory_order_wins_on_substring_overlap() -> None:
    stations = [
        Station(id="short", name="Bank", terminal_name="000001", lat=51.51, long=-0.09),
        Station(id="long", name="Bank Street, Canary Wharf", terminal_name="000002", lat=51.50, long=-0.02),
    ]
    # Known limitation: the short name is a substring of the address and comes first.
    station = resolve_station("Bank Street, Canary Wharf", stations)
    assert station is not None and station.id == "short"


def test_resolver_is_deterministic_and_memoised() -> None:
    resolver = StationResolver(TFL_STATIONS)
    first = resolver.resolve("Phillimore Gdns Kensington W8")
    second = resolver.resolve("Phillimore Gdns Kensington W8")
    assert first is second
    assert first == StationResolver(TFL_STATIONS).resolve("Phillimore Gdns Kensington W8")


def test_coordinate_fallback_snaps_to_nearest_station_within_radius() -> None:
    assert parse_coordinates("51.5292, -0.1100") == (51.5292, -0.11)

    plain = StationResolver(TFL_STATIONS)
    assert plain.resolve("51.5292, -0.1100") is None

    with_coords = StationResolver.with_coordinate_fallback(TFL_STATIONS, max_distance_km=0.5)
    station = with_coords.resolve("51.5292, -0.1100")
    assert station is not None and station.id == "1"
    assert with_coords.resolve("51.60, -0.30") is None
