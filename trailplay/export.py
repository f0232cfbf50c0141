"""
Export Functions for Track Analysis

This module exports track points and activity segments to CSV for external
analysis.
"""

import csv
import io
from . import utils
from .models import Track

POINT_COLUMNS = [
    "index",
    "time",
    "lat",
    "lon",
    "elevation_m",
    "distance_km",
    "speed_kmh",
    "speed_estimated",
    "heart_rate_bpm",
]

SEGMENT_COLUMNS = [
    "activity",
    "start_index",
    "end_index",
    "point_count",
    "start_time",
    "end_time",
    "distance_km",
    "duration_hours",
    "avg_speed_kmh",
]


def export_track_csv(track: Track) -> str:
    """
    Export a track's points to CSV format.

    Args:
        track: Parsed track.

    Returns:
        CSV string with one row per point. Missing times and heart rates are
        empty cells.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(POINT_COLUMNS)

    for point in track.points:
        writer.writerow([
            point.index,
            utils.isoformat_or_none(point.time),
            point.lat,
            point.lon,
            utils.round_float(point.elevation, digits=2),
            utils.round_float(point.distance, digits=5),
            utils.round_float(point.speed),
            point.speed_estimated,
            utils.round_float(point.heart_rate, digits=1),
        ])

    return buffer.getvalue()


def export_activity_segments_csv(track: Track) -> str:
    """Export a track's activity segments to CSV format."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(SEGMENT_COLUMNS)

    for segment in track.activity_segments:
        writer.writerow([
            segment.activity.value,
            segment.start_index,
            segment.end_index,
            segment.point_count,
            utils.isoformat_or_none(segment.start_time),
            utils.isoformat_or_none(segment.end_time),
            utils.round_float(segment.distance, digits=5),
            utils.round_float(segment.duration_hours, digits=5),
            utils.round_float(segment.avg_speed),
        ])

    return buffer.getvalue()
