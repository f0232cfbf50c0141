"""
Track Statistics Aggregation

Pure reductions over the final point series, run once as the last parsing
step. Durations are in hours, distances in km, speeds in km/h.
"""

import math
import numpy as np
import pandas as pd
from typing import Optional
from . import constants
from . import utils
from .models import Stats


def summarize_heart_rate(heart_rates: pd.Series) -> dict:
    """
    Summarize heart-rate samples inside (HR_MIN, HR_MAX).

    Returns:
        Dictionary with has_heart_rate_data, avg_heart_rate (rounded half up
        to int, 0 when no data), min_heart_rate, max_heart_rate (None when no
        data) and heart_rate_data_points.
    """
    values = heart_rates.dropna()
    values = values[(values > constants.HR_MIN) & (values < constants.HR_MAX)]

    if values.empty:
        return {
            "has_heart_rate_data": False,
            "avg_heart_rate": 0,
            "min_heart_rate": None,
            "max_heart_rate": None,
            "heart_rate_data_points": 0,
        }

    return {
        "has_heart_rate_data": True,
        "avg_heart_rate": int(math.floor(float(values.mean()) + 0.5)),
        "min_heart_rate": float(values.min()),
        "max_heart_rate": float(values.max()),
        "heart_rate_data_points": int(len(values)),
    }


def summarize_elevation(elevations: pd.Series) -> dict:
    """Gain, loss and extremes; extremes are 0 for an empty series."""
    deltas = elevations.diff().dropna()
    return {
        "elevation_gain": float(deltas.clip(lower=0).sum()),
        "elevation_loss": float(-deltas.clip(upper=0).sum()),
        "min_elevation": float(elevations.min()) if not elevations.empty else 0.0,
        "max_elevation": float(elevations.max()) if not elevations.empty else 0.0,
    }


def summarize_moving(df: pd.DataFrame) -> dict:
    """
    Moving-time statistics from measured (time-derived) leg speeds.

    A leg counts as moving when its measured speed exceeds
    MOVING_SPEED_THRESHOLD_KMH. Filled-in speeds are ignored.
    """
    if "measured_speed" not in df or df.empty:
        return {"max_speed": 0.0, "moving_time": 0.0, "avg_moving_speed": 0.0}

    speeds = df["measured_speed"].to_numpy(dtype=float)
    leg_hours = np.nan_to_num(df["leg_hours"].to_numpy(dtype=float), nan=0.0)
    legs = df["leg_distance"].to_numpy(dtype=float)

    moving = speeds > constants.MOVING_SPEED_THRESHOLD_KMH
    moving_time = float(leg_hours[moving].sum())
    moving_distance = float(legs[moving].sum())

    return {
        "max_speed": float(speeds.max()) if len(speeds) else 0.0,
        "moving_time": moving_time,
        "avg_moving_speed": moving_distance / moving_time if moving_time > 0 else 0.0,
    }


def _first_last_time(times: pd.Series):
    present = times.dropna()
    if present.empty:
        return None, None
    return utils.to_datetime(present.iloc[0]), utils.to_datetime(present.iloc[-1])


def compute_stats(df: pd.DataFrame) -> Stats:
    """
    Compute track-level statistics from the final point series.

    Total duration comes from the first and last timestamps when both exist
    and span a positive interval. Otherwise, for a track with distance, it is
    estimated at PARSER_ESTIMATED_SPEED_KMH and ``duration_estimated`` is set.

    Args:
        df: DataFrame after fill_missing_speeds().

    Returns:
        Stats for the track.
    """
    total_distance = float(df["distance"].iloc[-1]) if not df.empty else 0.0
    start_time, end_time = _first_last_time(df["time"]) if not df.empty else (None, None)

    duration: Optional[float] = utils.hours_between(start_time, end_time)
    duration_estimated = False
    if duration is None or duration <= 0:
        duration = 0.0
        if total_distance > 0:
            duration = total_distance / constants.PARSER_ESTIMATED_SPEED_KMH
            duration_estimated = True

    avg_speed = total_distance / duration if duration > 0 else 0.0

    return Stats(
        total_distance=total_distance,
        total_duration=duration,
        avg_speed=avg_speed,
        start_time=start_time,
        end_time=end_time,
        has_time_data=start_time is not None and end_time is not None,
        duration_estimated=duration_estimated,
        point_count=int(len(df)),
        **summarize_elevation(df["elevation"]),
        **summarize_heart_rate(df["heart_rate"]),
        **summarize_moving(df),
    )
