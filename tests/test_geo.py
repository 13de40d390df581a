from __future__ import annotations

import math

from cyclestats.utils.geo import haversine_km


def test_haversine_is_symmetric_and_zero_on_same_point() -> None:
    a = (51.5, -0.1)
    b = (51.51, -0.09)
    assert haversine_km(*a, *b) == haversine_km(*b, *a)
    assert haversine_km(*a, *a) == 0.0


def test_haversine_matches_known_distance() -> None:
    d = haversine_km(51.5, -0.1, 51.51, -0.09)
    assert 1.2 < d < 1.4


def test_one_degree_of_latitude_is_about_111_km() -> None:
    assert math.isclose(haversine_km(0.0, 0.0, 1.0, 0.0), 111.19, rel_tol=1e-3)
