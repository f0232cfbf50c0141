"""
Track Payload and GeoJSON Conversion

This module converts the parsed point series into TrackPoint records, and
converts tracks, playback state and positions into plain dictionaries
suitable for JSON responses and for crossing the background-parser process
boundary. ``track_from_payload`` rehydrates a payload into a Track.
"""

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from . import utils
from .models import (
    ActivitySegment,
    ActivityType,
    Bounds,
    PlaybackState,
    Position,
    Stats,
    Track,
    TrackPoint,
)

STATS_TIME_FIELDS = ("start_time", "end_time")


def build_track_points(df: pd.DataFrame) -> Tuple[TrackPoint, ...]:
    """
    Convert the final point DataFrame to TrackPoint records.

    Args:
        df: DataFrame after fill_missing_speeds(), indexed 0..n-1 in
            accepted-point order.

    Returns:
        Tuple of TrackPoint; ``index`` is the accepted-point position.
    """
    points = []
    for idx, row in enumerate(df.itertuples(index=False)):
        heart_rate = None if np.isnan(row.heart_rate) else float(row.heart_rate)
        points.append(TrackPoint(
            lat=float(row.lat),
            lon=float(row.lon),
            elevation=float(row.elevation),
            time=utils.to_datetime(row.time),
            heart_rate=heart_rate,
            index=idx,
            distance=float(row.distance),
            speed=float(row.speed),
            speed_estimated=bool(row.speed_estimated),
        ))
    return tuple(points)


def _plain(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (float, np.floating)):
        return utils.preserve_precision(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, tuple):
        return list(value)
    if dataclasses.is_dataclass(value):
        return to_plain_dict(value)
    return value


def to_plain_dict(record) -> Dict:
    """Shallow dataclass → dict with ISO timestamps and enum values."""
    return {f.name: _plain(getattr(record, f.name)) for f in dataclasses.fields(record)}


def track_to_payload(track: Track, include_points: bool = True) -> Dict:
    """
    Convert a Track to its plain payload form.

    Args:
        track: Parsed track.
        include_points: When False, the ``points`` list is omitted (summary
            listings).

    Returns:
        Dictionary with id, name, stats, bounds, activity_segments and,
        optionally, points.
    """
    payload = {
        "id": track.id,
        "name": track.name,
        "stats": to_plain_dict(track.stats),
        "bounds": to_plain_dict(track.bounds) if track.bounds is not None else None,
        "activity_segments": [to_plain_dict(s) for s in track.activity_segments],
    }
    if include_points:
        payload["points"] = [to_plain_dict(p) for p in track.points]
    return payload


def _stats_from_payload(data: Dict) -> Stats:
    data = dict(data)
    for name in STATS_TIME_FIELDS:
        data[name] = utils.to_datetime(data.get(name))
    return Stats(**data)


def _bounds_from_payload(data: Optional[Dict]) -> Optional[Bounds]:
    if data is None:
        return None
    data = dict(data)
    data["center"] = tuple(data["center"])
    return Bounds(**data)


def _segment_from_payload(data: Dict) -> ActivitySegment:
    data = dict(data)
    data["activity"] = ActivityType(data["activity"])
    data["start_time"] = utils.to_datetime(data.get("start_time"))
    data["end_time"] = utils.to_datetime(data.get("end_time"))
    return ActivitySegment(**data)


def _point_from_payload(data: Dict) -> TrackPoint:
    data = dict(data)
    data["time"] = utils.to_datetime(data.get("time"))
    return TrackPoint(**data)


def track_from_payload(payload: Dict) -> Track:
    """
    Rehydrate a Track from ``track_to_payload()`` output.

    Raises:
        KeyError: If a required payload key is missing.
    """
    return Track(
        id=payload["id"],
        name=payload["name"],
        points=tuple(_point_from_payload(p) for p in payload["points"]),
        stats=_stats_from_payload(payload["stats"]),
        bounds=_bounds_from_payload(payload.get("bounds")),
        activity_segments=tuple(_segment_from_payload(s) for s in payload["activity_segments"]),
    )


def track_to_geojson(track: Track) -> Dict:
    """
    Convert a track to a GeoJSON FeatureCollection.

    Creates a LineString feature for the track path (with elevation as the
    third coordinate) and Point features for the start and finish.

    Raises:
        ValueError: If the track has no points.
    """
    coordinates = [[p.lon, p.lat, p.elevation] for p in track.points]
    if not coordinates:
        raise ValueError("No valid coordinates in track.")

    line_feature = {
        "type": "Feature",
        "geometry": {
            "type": "LineString",
            "coordinates": coordinates,
        },
        "properties": {
            "trackId": track.id,
            "name": track.name,
            "sampleCount": len(coordinates),
            "totalDistanceKm": track.stats.total_distance,
        },
    }

    markers = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": coordinates[index][:2]},
            "properties": {"marker": marker},
        }
        for marker, index in (("start", 0), ("finish", -1))
    ]

    return {
        "type": "FeatureCollection",
        "features": [line_feature] + markers,
    }


def playback_state_to_payload(state: PlaybackState) -> Dict:
    payload = to_plain_dict(state)
    payload["is_playing"] = state.is_playing
    return payload


def position_to_payload(position: Optional[Position]) -> Optional[Dict]:
    if position is None:
        return None
    return to_plain_dict(position)


def playback_snapshot(state: PlaybackState, position: Optional[Position],
                      bearing: Optional[float] = None) -> Dict:
    """Combined playback state and current position, as served to clients."""
    return {
        "state": playback_state_to_payload(state),
        "position": position_to_payload(position),
        "bearing": utils.round_float(bearing, digits=2) if bearing is not None else None,
    }
