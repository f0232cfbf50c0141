"""
Utility Functions for Track Analysis

This module provides helper functions for data conversion, rounding, and
timestamp handling used throughout the analysis pipeline.
"""

import numpy as np
import pandas as pd
from datetime import datetime
from typing import Optional


def safe_float(value) -> float:
    """
    Safely convert a value to float, returning NaN on failure.

    Args:
        value: Value to convert (string, number, etc.).

    Returns:
        Float value, or np.nan if conversion fails.
    """
    if isinstance(value, str):
        value = value.strip()
    try:
        return float(value)
    except (TypeError, ValueError):
        return np.nan


def round_float(value, digits: int = 3) -> Optional[float]:
    """
    Round a float value, handling None, NaN, and Inf.

    Args:
        value: Value to round.
        digits: Number of decimal places. Default 3.

    Returns:
        Rounded float, or None if value is None, NaN, or Inf.
    """
    if value is None or (isinstance(value, float) and (np.isnan(value) or np.isinf(value))):
        return None
    return round(float(value), digits)


def preserve_precision(value, digits: Optional[int] = None) -> Optional[float]:
    """
    Preserve or round precision of a float value.

    Args:
        value: Value to process.
        digits: Number of decimal places. If None, preserves original precision.

    Returns:
        Float value (rounded if digits specified), or None if value is None or NaN.
    """
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    if digits is None:
        return float(value)
    return round(float(value), digits)


def to_datetime(value) -> Optional[datetime]:
    """
    Convert a pandas timestamp, ISO string or datetime into a UTC datetime.

    Unparseable and missing values map to None instead of raising.
    """
    if value is None:
        return None
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to ISO 8601, passing None through."""
    return value.isoformat() if value is not None else None


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Elapsed hours between two timestamps, or None if either is missing."""
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 3600.0
