from __future__ import annotations

import json
from pathlib import Path

from cyclestats.config.models import CacheSettings, StorageSettings
from cyclestats.ingestion.rides import rides_to_json
from cyclestats.repository.local import LocalRideStore
from cyclestats.utils.cache import JsonFileCache


def test_save_load_and_clear(tmp_path: Path, make_ride) -> None:
    store = LocalRideStore(StorageSettings(rides_path=tmp_path / "rides.json"), now_ms=lambda: 1_700_000_000_000)
    assert store.info() is None
    assert store.load() == []

    rides = [make_ride(ride_id="a"), make_ride("Station B", "Station A", ride_id="b")]
    info = store.save(rides)
    assert (info.saved_at_ms, info.ride_count) == (1_700_000_000_000, 2)

    stored = json.loads(store.path.read_text(encoding="utf-8"))
    assert stored["rideCount"] == 2
    assert stored["savedAt"] == 1_700_000_000_000
    assert store.load() == rides
    assert store.info() == info

    store.clear()
    assert store.info() is None
    store.clear()


def test_reads_legacy_array_format(tmp_path: Path, make_ride) -> None:
    path = tmp_path / "rides.json"
    path.write_text(json.dumps(rides_to_json([make_ride(ride_id="x")])), encoding="utf-8")
    store = LocalRideStore(StorageSettings(rides_path=path), now_ms=lambda: 42)

    info = store.info()
    assert info is not None
    assert (info.saved_at_ms, info.ride_count) == (42, 1)
    assert [r.ride_id for r in store.load()] == ["x"]


def test_unreadable_store_loads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "rides.json"
    path.write_text("{not json", encoding="utf-8")
    assert LocalRideStore(StorageSettings(rides_path=path)).load() == []

    path.write_text(json.dumps([{"rideId": "missing everything else"}]), encoding="utf-8")
    assert LocalRideStore(StorageSettings(rides_path=path)).load() == []


def test_cache_expires_after_ttl(tmp_path: Path) -> None:
    now = [1000.0]
    cache = JsonFileCache(CacheSettings(dir=tmp_path, ttl_seconds=60), now_fn=lambda: now[0])
    key = cache.make_key("tfl:stations", {"url": "https://example.com"})
    cache.set(key, [{"id": "1"}])
    assert cache.get(key) == [{"id": "1"}]

    now[0] += 61
    assert cache.get(key) is None

    (tmp_path / f"{key}.json").write_text("{truncated", encoding="utf-8")
    assert cache.get(key) is None
