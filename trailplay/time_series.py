"""
Point Series Extraction for Track Analysis

This module turns raw point records into a validated, ordered DataFrame.
Records with missing or out-of-range coordinates are dropped here; missing
elevation defaults to 0 and unparseable timestamps become NaT without
rejecting the point.
"""

import logging
import numpy as np
import pandas as pd
from typing import Mapping, Sequence, Tuple
from . import constants
from . import utils

logger = logging.getLogger(__name__)

POINT_COLUMNS = ["lat", "lon", "elevation", "time", "heart_rate"]


def extract_heart_rate(value) -> float:
    """
    Parse a heart-rate value, keeping it only inside (HR_MIN, HR_MAX).

    Returns:
        Heart rate as float, or np.nan when absent, unparseable or out of range.
    """
    hr = utils.safe_float(value)
    if np.isnan(hr) or not (constants.HR_MIN < hr < constants.HR_MAX):
        return np.nan
    return hr


def extract_point_row(record: Mapping) -> dict:
    """
    Extract one row of point fields from a raw record.

    Accepts "ele"/"elevation", "time" and "hr"/"heart_rate" keys.
    """
    elevation = utils.safe_float(record.get("ele", record.get("elevation")))
    if not np.isfinite(elevation):
        elevation = 0.0

    return {
        "lat": utils.safe_float(record.get("lat")),
        "lon": utils.safe_float(record.get("lon")),
        "elevation": elevation,
        "time": utils.to_datetime(record.get("time")),
        "heart_rate": extract_heart_rate(record.get("hr", record.get("heart_rate"))),
    }


def valid_coordinate_mask(df: pd.DataFrame) -> pd.Series:
    """True for rows whose lat/lon are finite and inside the valid ranges."""
    return (
        df["lat"].between(constants.MIN_LAT, constants.MAX_LAT)
        & df["lon"].between(constants.MIN_LON, constants.MAX_LON)
    )


def extract_point_series(records: Sequence[Mapping]) -> Tuple[pd.DataFrame, int]:
    """
    Flatten raw point records into an ordered DataFrame of accepted points.

    Args:
        records: Raw point records in source order.

    Returns:
        Tuple of (DataFrame with columns lat, lon, elevation, time (UTC,
        NaT when missing), heart_rate (NaN when missing); number of records
        skipped for invalid coordinates). Row order follows the input and
        the index is reset to 0..n-1.
    """
    rows = [extract_point_row(record) for record in records]
    df = pd.DataFrame(rows, columns=POINT_COLUMNS)

    if df.empty:
        return df, 0

    df["time"] = pd.to_datetime(df["time"], utc=True)
    mask = valid_coordinate_mask(df)
    skipped = int((~mask).sum())
    if skipped:
        logger.warning("Skipped %d point(s) with invalid coordinates", skipped)

    df = df[mask].reset_index(drop=True)
    return df, skipped
