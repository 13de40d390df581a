from __future__ import annotations

# `logging` reports fetches and cache hits without failing silently.
import logging
# TfL publishes the station directory as a flat XML list of <station> elements.
import xml.etree.ElementTree as ET
from dataclasses import asdict
from typing import Any, Mapping, Optional

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from cyclestats.config.models import StationFeedSettings
from cyclestats.schemas.core import Station
from cyclestats.utils.cache import JsonFileCache


logger = logging.getLogger(__name__)


# Non-2xx responses and unparseable payloads surface as one error type for callers.
class StationFeedError(RuntimeError):
    pass


def _text(el: ET.Element, tag: str) -> str:
    child = el.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _number(el: ET.Element, tag: str) -> float:
    text = _text(el, tag)
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def _int(el: ET.Element, tag: str) -> int:
    return int(_number(el, tag))


def _int_or_none(el: ET.Element, tag: str) -> Optional[int]:
    text = _text(el, tag)
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def _bool(el: ET.Element, tag: str) -> bool:
    return _text(el, tag) == "true"


def parse_station_element(el: ET.Element) -> Station:
    return Station(
        id=_text(el, "id"),
        name=_text(el, "name"),
        terminal_name=_text(el, "terminalName"),
        lat=_number(el, "lat"),
        long=_number(el, "long"),
        installed=_bool(el, "installed"),
        locked=_bool(el, "locked"),
        install_date=_int_or_none(el, "installDate"),
        removal_date=_int_or_none(el, "removalDate"),
        temporary=_bool(el, "temporary"),
        nb_bikes=_int(el, "nbBikes"),
        nb_standard_bikes=_int(el, "nbStandardBikes"),
        nb_e_bikes=_int(el, "nbEBikes"),
        nb_empty_docks=_int(el, "nbEmptyDocks"),
        nb_docks=_int(el, "nbDocks"),
    )


def parse_station_feed(xml_text: str) -> list[Station]:
    """
    Parse the TfL `livecyclehireupdates.xml` document.

    Missing counters default to 0, missing dates to None; stations without an id are skipped.
    """

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise StationFeedError(f"Station feed is not valid XML: {e}") from e

    stations = []
    for el in root.iter("station"):
        station = parse_station_element(el)
        if not station.id:
            logger.warning("Skipping station without id (name=%r)", station.name)
            continue
        stations.append(station)
    return stations


def station_to_record(station: Station) -> dict[str, Any]:
    return asdict(station)


def station_from_record(record: Mapping[str, Any]) -> Station:
    return Station(**{k: record[k] for k in Station.__dataclass_fields__ if k in record})


def stations_frame(stations: list[Station]) -> pd.DataFrame:
    columns = list(Station.__dataclass_fields__)
    return pd.DataFrame([station_to_record(s) for s in stations], columns=columns)


class StationFeedClient:
    """
    Fetch the live station directory.

    Retries transient failures through a urllib3 `Retry` policy mounted on the session and,
    when a cache is given, reuses the parsed snapshot until the cache TTL expires.
    """

    def __init__(
        self,
        settings: StationFeedSettings,
        *,
        cache: Optional[JsonFileCache] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": settings.user_agent})

        retry = Retry(
            total=settings.max_retries,
            connect=settings.max_retries,
            read=settings.max_retries,
            status=settings.max_retries,
            backoff_factor=settings.backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=("GET",),
            respect_retry_after_header=True,
            raise_on_status=False,
        )
        self._session.mount("https://", HTTPAdapter(max_retries=retry))
        self._session.mount("http://", HTTPAdapter(max_retries=retry))

    def fetch_xml(self) -> str:
        try:
            resp = self._session.get(self._settings.url, timeout=self._settings.timeout_s)
        except requests.RequestException as e:
            raise StationFeedError(f"Failed to fetch stations: {e}") from e
        if resp.status_code >= 400:
            raise StationFeedError(f"Failed to fetch stations ({resp.status_code}): {resp.text[:200]}")
        return resp.text

    def list_stations(self, *, use_cache: bool = True) -> list[Station]:
        cache_key = None
        if self._cache is not None and use_cache:
            cache_key = self._cache.make_key("tfl:stations", {"url": self._settings.url})
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Station feed cache hit (%d stations)", len(cached))
                return [station_from_record(r) for r in cached]

        stations = parse_station_feed(self.fetch_xml())
        logger.info("Fetched %d stations from %s", len(stations), self._settings.url)
        if self._cache is not None and cache_key is not None:
            self._cache.set(cache_key, [station_to_record(s) for s in stations])
        return stations
