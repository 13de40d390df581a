from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional

import pytest


def pytest_configure() -> None:
    """
    Keep a `src/` layout while allowing `pytest` to run without requiring an editable install.
    """

    project_root = Path(__file__).resolve().parents[1]
    src_path = project_root / "src"
    sys.path.insert(0, str(src_path))


@pytest.fixture
def stations():
    from cyclestats.schemas.core import Station

    return [
        Station(id="1", name="Station A", terminal_name="001001", lat=51.5, long=-0.1),
        Station(id="2", name="Station B", terminal_name="001002", lat=51.51, long=-0.09),
        # ~0.9 km north of Station A.
        Station(id="3", name="Station D", terminal_name="001004", lat=51.5081, long=-0.1),
    ]


@pytest.fixture
def make_ride() -> Callable[..., object]:
    from cyclestats.schemas.core import PriceBreakdownItem, Ride

    def _make(
        start: Optional[str] = "Station A",
        end: Optional[str] = "Station B",
        start_ms: Optional[int] = 0,
        end_ms: Optional[int] = 600_000,
        *,
        price: Optional[str] = None,
        breakdown: tuple[tuple[Optional[str], Optional[str]], ...] = (),
        ride_id: Optional[str] = None,
    ) -> Ride:
        return Ride(
            ride_id=ride_id,
            start_time_ms=start_ms,
            end_time_ms=end_ms,
            start_address=start,
            end_address=end,
            price=price,
            price_breakdown=tuple(PriceBreakdownItem(title=t, amount=a) for t, a in breakdown),
        )

    return _make
