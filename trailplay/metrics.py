"""
Metrics Computation for Track Analysis

This module computes derived per-point metrics from the accepted point
series: leg and cumulative distances, instantaneous speeds, elevation
deltas, and the speed fill-in pass for points without a measured speed.
"""

import logging
import numpy as np
import pandas as pd
from typing import Optional, Tuple
from . import constants
from . import geodesy

logger = logging.getLogger(__name__)


def compute_derived_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Compute derived metrics from the accepted point series.

    Calculates:
    - Leg distance from the previous accepted point and cumulative distance (km)
    - Leg duration in hours, where both neighbouring points carry time
    - Measured speed (km/h) from leg distance over positive leg duration;
      0 when either timestamp is missing or the leg duration is not positive
    - Elevation delta from the previous point (m)

    Args:
        df: DataFrame from extract_point_series().

    Returns:
        DataFrame with additional columns: leg_distance, distance, leg_hours,
        measured_speed, elevation_delta.
    """
    df = df.copy()
    if df.empty:
        for column in ("leg_distance", "distance", "leg_hours", "measured_speed", "elevation_delta"):
            df[column] = pd.Series(dtype=float)
        return df

    legs = geodesy.leg_distances_km(df["lat"].to_numpy(), df["lon"].to_numpy())
    df["leg_distance"] = legs
    df["distance"] = np.cumsum(legs)

    leg_hours = df["time"].diff().dt.total_seconds() / 3600.0
    df["leg_hours"] = leg_hours

    with np.errstate(divide="ignore", invalid="ignore"):
        speed = np.where(leg_hours.to_numpy() > 0, legs / leg_hours.to_numpy(), 0.0)
    df["measured_speed"] = np.nan_to_num(speed, nan=0.0, posinf=0.0, neginf=0.0)

    df["elevation_delta"] = df["elevation"].diff().fillna(0.0)
    return df


def estimate_all_speeds(elevations: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """
    Synthesize plausible speeds for a track without any time data.

    Each point gets the base speed, scaled down after a climb of more than
    SLOPE_THRESHOLD_M from the previous point and up after a similar drop,
    times a uniform jitter in [JITTER_MIN, JITTER_MIN + JITTER_SPAN).

    These speeds are a visualization aid, not measured data.

    Args:
        elevations: Elevation per point in metres.
        rng: Random source; pass a seeded generator for reproducible output.

    Returns:
        Array of positive speeds in km/h.
    """
    elevations = np.asarray(elevations, dtype=float)
    n = len(elevations)

    deltas = np.zeros(n)
    if n > 1:
        deltas[1:] = np.diff(elevations)

    multipliers = np.ones(n)
    multipliers[deltas > constants.SLOPE_THRESHOLD_M] = constants.UPHILL_SPEED_FACTOR
    multipliers[deltas < -constants.SLOPE_THRESHOLD_M] = constants.DOWNHILL_SPEED_FACTOR

    jitter = constants.JITTER_MIN + rng.random(n) * constants.JITTER_SPAN
    return constants.SYNTHETIC_BASE_SPEED_KMH * multipliers * jitter


def interpolate_missing_speeds(speeds: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Fill non-positive speeds from the nearest known positive speeds.

    Points between two known speeds get the linear interpolation by index;
    points with a known speed on one side only inherit it. The mean of the
    known speeds is the fallback for anything still non-positive.

    Args:
        speeds: Speeds in km/h; values <= 0 or NaN are treated as unknown.

    Returns:
        Tuple of (filled speeds, boolean mask of filled positions).
    """
    speeds = np.nan_to_num(np.asarray(speeds, dtype=float), nan=0.0)
    known = speeds > 0
    if not known.any():
        raise ValueError("interpolate_missing_speeds needs at least one positive speed")

    positions = np.arange(len(speeds))
    interpolated = np.interp(positions, positions[known], speeds[known])
    fallback = float(speeds[known].mean())
    interpolated = np.where(interpolated > 0, interpolated, fallback)

    filled = speeds.copy()
    filled[~known] = interpolated[~known]
    return filled, ~known


def fill_missing_speeds(df: pd.DataFrame, rng: Optional[np.random.Generator] = None) -> pd.DataFrame:
    """
    Populate a positive speed for every point.

    Uses interpolation when some points carry a measured speed, otherwise
    synthesizes every speed with estimate_all_speeds().

    Args:
        df: DataFrame from compute_derived_metrics().
        rng: Random source for the synthetic path. Defaults to a fresh
            unseeded generator.

    Returns:
        DataFrame with ``speed`` and ``speed_estimated`` columns.
    """
    df = df.copy()
    if df.empty:
        df["speed"] = pd.Series(dtype=float)
        df["speed_estimated"] = pd.Series(dtype=bool)
        return df

    measured = df["measured_speed"].to_numpy(dtype=float)
    if not (measured > 0).any():
        rng = rng if rng is not None else np.random.default_rng()
        logger.info("No measured speeds; synthesizing speeds for %d point(s)", len(df))
        df["speed"] = estimate_all_speeds(df["elevation"].to_numpy(), rng)
        df["speed_estimated"] = True
        return df

    speeds, estimated = interpolate_missing_speeds(measured)
    df["speed"] = speeds
    df["speed_estimated"] = estimated
    return df
