import numpy as np
import pytest

from trailplay.geodesy import bearing_deg, compute_bounds, haversine_km, leg_distances_km
from trailplay.models import Waypoint


def test_haversine_zero_for_identical_points():
    assert haversine_km(45.0, 7.0, 45.0, 7.0) == 0.0


def test_haversine_one_degree_of_longitude_at_equator():
    # 2 * pi * 6371 / 360
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.195, abs=1e-3)


def test_haversine_is_symmetric():
    a = haversine_km(48.85, 2.35, 51.5, -0.12)
    b = haversine_km(51.5, -0.12, 48.85, 2.35)
    assert a == pytest.approx(b)
    assert a == pytest.approx(343.2, abs=2.0)


def test_haversine_vectorized_matches_scalar():
    lats = np.array([0.0, 10.0])
    lons = np.array([0.0, 20.0])
    result = haversine_km(lats, lons, lats + 1, lons + 1)
    assert isinstance(result, np.ndarray)
    assert result[1] == pytest.approx(haversine_km(10.0, 20.0, 11.0, 21.0))


def test_leg_distances_start_with_zero():
    legs = leg_distances_km([0.0, 0.0, 0.0], [0.0, 0.01, 0.03])
    assert legs[0] == 0.0
    assert legs[2] == pytest.approx(2 * legs[1], rel=1e-6)


def test_leg_distances_single_point():
    assert list(leg_distances_km([1.0], [2.0])) == [0.0]


@pytest.mark.parametrize("lat2, lon2, expected", [
    (1.0, 0.0, 0.0),
    (0.0, 1.0, 90.0),
    (-1.0, 0.0, 180.0),
    (0.0, -1.0, 270.0),
])
def test_bearing_cardinal_directions(lat2, lon2, expected):
    assert bearing_deg(0.0, 0.0, lat2, lon2) == pytest.approx(expected, abs=1e-6)


def test_compute_bounds_empty_returns_none():
    assert compute_bounds([]) is None


def test_compute_bounds_center_is_lon_lat():
    bounds = compute_bounds([Waypoint(10.0, 20.0), Waypoint(12.0, 24.0)])
    assert (bounds.north, bounds.south, bounds.east, bounds.west) == (12.0, 10.0, 24.0, 20.0)
    assert bounds.center == (22.0, 11.0)
