"""
Track Parser

Orchestrates the parsing pipeline: tier selection, point validation,
derived metrics, speed fill-in, statistics, bounds and activity
segmentation. Failures are terminal and raise a ParseError; no partial
Track is ever returned.
"""

import logging
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

import numpy as np

from . import activity
from . import data_loading
from . import geodesy
from . import metrics
from . import stats
from . import telemetry
from . import time_series
from .data_loading import RawPointSource
from .errors import NoTrackPointsError
from .models import Track, new_id

logger = logging.getLogger(__name__)

DEFAULT_TRACK_NAME = "Track"


def select_point_tier(source: RawPointSource) -> Tuple[str, List[Mapping]]:
    """
    Pick the first non-empty tier: track points, route points, waypoints.

    Raises:
        NoTrackPointsError: If every tier is empty.
    """
    for tier, records in source.tiers():
        if records:
            logger.debug("Using %d %s record(s)", len(records), tier)
            return tier, records
    raise NoTrackPointsError("No track points found")


def parse_point_source(source: RawPointSource, name: Optional[str] = None,
                       rng: Optional[np.random.Generator] = None,
                       track_id: Optional[str] = None) -> Track:
    """
    Parse a tiered raw point source into a canonical Track.

    Args:
        source: Decoded raw point records.
        name: Fallback track name when the source carries none.
        rng: Random source for synthetic speeds; seed it for reproducible
            output on tracks without time data.
        track_id: Explicit id; a fresh one is generated when omitted.

    Returns:
        Track with points, stats, bounds and activity segments.

    Raises:
        NoTrackPointsError: If no tier has records, or none of the selected
            records has valid coordinates.
    """
    _, records = select_point_tier(source)

    df, _ = time_series.extract_point_series(records)
    if df.empty:
        raise NoTrackPointsError("No valid track points found")

    df = metrics.compute_derived_metrics(df)
    df = metrics.fill_missing_speeds(df, rng=rng)

    points = telemetry.build_track_points(df)
    track = Track(
        id=track_id or new_id("track"),
        name=source.name or name or DEFAULT_TRACK_NAME,
        points=points,
        stats=stats.compute_stats(df),
        bounds=geodesy.compute_bounds(points),
        activity_segments=activity.detect_activity_segments(points),
    )
    logger.info(
        "Parsed track %r: %d point(s), %.3f km",
        track.name, len(points), track.stats.total_distance,
    )
    return track


def parse_gpx(content: str, name: Optional[str] = None,
              rng: Optional[np.random.Generator] = None,
              track_id: Optional[str] = None) -> Track:
    """
    Parse GPX text into a Track.

    Args:
        content: GPX document.
        name: File name used when the document has no track or metadata
            name; a trailing ``.gpx`` is dropped.
        rng: Random source for synthetic speeds.
        track_id: Explicit id; generated when omitted.

    Raises:
        InvalidFormatError: If the document is not well-formed XML.
        NoTrackPointsError: If the document holds no usable points.
    """
    source = data_loading.decode_gpx(content)
    fallback = Path(name).stem if name and name.lower().endswith(".gpx") else name
    return parse_point_source(source, name=fallback, rng=rng, track_id=track_id)


def parse_gpx_file(file_path: Path, rng: Optional[np.random.Generator] = None) -> Track:
    """Load and parse a GPX file from disk, named after the file."""
    file_path = Path(file_path)
    return parse_gpx(data_loading.load_gpx_file(file_path), name=file_path.name, rng=rng)
