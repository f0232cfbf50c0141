"""
Activity Segmentation for Track Analysis

This module classifies each point by speed and merges adjacent points with
the same class into contiguous activity segments. Segments partition the
point indices exactly.
"""

from typing import List, Sequence, Tuple
from . import constants
from . import utils
from .models import ActivitySegment, ActivityType, TrackPoint


def classify_speed(speed: float) -> ActivityType:
    """
    Classify a point speed (km/h) into an activity.

    The checks run in a fixed order: below the swimming threshold, then
    above the cycling threshold, then above the running threshold. WALKING
    is never produced.
    """
    thresholds = constants.ACTIVITY_SPEED_THRESHOLDS
    if speed < thresholds["swimming"]:
        return ActivityType.SWIMMING
    if speed > thresholds["cycling"]:
        return ActivityType.CYCLING
    if speed > thresholds["running"]:
        return ActivityType.CYCLING
    return ActivityType.RUNNING


def build_activity_segment(points: Sequence[TrackPoint], activity: ActivityType,
                           start_idx: int, end_idx: int) -> ActivitySegment:
    """
    Build an activity segment record for points[start_idx:end_idx + 1].

    Args:
        points: All track points.
        activity: Shared activity class of the run.
        start_idx: Index of the first point in the run.
        end_idx: Index of the last point in the run (inclusive).

    Returns:
        ActivitySegment. ``start_time`` is the first timestamp seen inside the
        run and ``end_time`` the last point's time. Duration and average
        speed are None when either is missing.
    """
    run = points[start_idx:end_idx + 1]
    first, last = run[0], run[-1]

    start_time = next((p.time for p in run if p.time is not None), None)
    end_time = last.time
    distance = max(0.0, last.distance - first.distance)

    if len(run) == 1:
        distance = 0.0
        duration_hours = 0.0
    else:
        duration_hours = utils.hours_between(start_time, end_time)
        if duration_hours is not None:
            duration_hours = max(0.0, duration_hours)

    avg_speed = distance / duration_hours if duration_hours else None

    return ActivitySegment(
        activity=activity,
        start_index=first.index,
        end_index=last.index,
        start_distance=first.distance,
        end_distance=last.distance,
        start_time=start_time,
        end_time=end_time,
        distance=distance,
        duration_hours=duration_hours,
        avg_speed=avg_speed,
        point_count=len(run),
    )


def detect_activity_segments(points: Sequence[TrackPoint]) -> Tuple[ActivitySegment, ...]:
    """
    Split a track into maximal runs of equal activity class.

    Args:
        points: Track points with speeds already filled in.

    Returns:
        Tuple of ActivitySegment in point order; empty for no points.
    """
    if not points:
        return ()

    ranges: List[Tuple[ActivityType, int, int]] = []
    current = classify_speed(points[0].speed)
    start_idx = 0

    for idx in range(1, len(points)):
        activity = classify_speed(points[idx].speed)
        if activity != current:
            ranges.append((current, start_idx, idx - 1))
            current = activity
            start_idx = idx

    # Final run is always flushed
    ranges.append((current, start_idx, len(points) - 1))

    return tuple(
        build_activity_segment(points, activity, start, end)
        for activity, start, end in ranges
    )
