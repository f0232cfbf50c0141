"""
Geodesy Utilities for Track Analysis

Pure functions for great-circle distance, bearing and bounding-box
computation. Distances are in kilometres.
"""

import numpy as np
from typing import Iterable, Optional
from . import constants
from .models import Bounds


def haversine_km(lat1, lon1, lat2, lon2):
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula on a sphere of radius 6371 km. Accepts scalars
    or numpy arrays (element-wise).

    Args:
        lat1, lon1: Latitude and longitude of first point in degrees.
        lat2, lon2: Latitude and longitude of second point in degrees.

    Returns:
        Distance in kilometres (float for scalar input, ndarray otherwise).
    """
    lat1_rad, lon1_rad = np.deg2rad(lat1), np.deg2rad(lon1)
    lat2_rad, lon2_rad = np.deg2rad(lat2), np.deg2rad(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    distance = constants.EARTH_RADIUS_KM * c
    if np.ndim(distance) == 0:
        return float(distance)
    return distance


def leg_distances_km(lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """
    Distances between consecutive points.

    Returns:
        Array the same length as the input; element 0 is 0 and element i is
        the distance from point i-1 to point i.
    """
    lats = np.asarray(lats, dtype=float)
    lons = np.asarray(lons, dtype=float)
    legs = np.zeros(len(lats), dtype=float)
    if len(lats) > 1:
        legs[1:] = haversine_km(lats[:-1], lons[:-1], lats[1:], lons[1:])
    return legs


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing from point 1 to point 2, in degrees within [0, 360)."""
    phi1, phi2 = np.deg2rad(lat1), np.deg2rad(lat2)
    dlon = np.deg2rad(lon2 - lon1)

    y = np.sin(dlon) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(dlon)
    return float((np.rad2deg(np.arctan2(y, x)) + 360.0) % 360.0)


def compute_bounds(points: Iterable) -> Optional[Bounds]:
    """
    Compute the bounding box of a point sequence.

    Points are any objects with ``lat`` and ``lon`` attributes. Points whose
    coordinates are missing or NaN are ignored.

    Args:
        points: Sequence of points.

    Returns:
        Bounds with north/south/east/west and a (lon, lat) center, or None
        when no valid point exists. Callers must handle None.
    """
    lats, lons = [], []
    for point in points:
        lat, lon = getattr(point, "lat", None), getattr(point, "lon", None)
        if lat is None or lon is None or np.isnan(lat) or np.isnan(lon):
            continue
        lats.append(lat)
        lons.append(lon)

    if not lats:
        return None

    north, south = max(lats), min(lats)
    east, west = max(lons), min(lons)
    return Bounds(
        north=north,
        south=south,
        east=east,
        west=west,
        center=((west + east) / 2, (south + north) / 2),
    )
