"""
Journey Timing and Position Resolution

This module maps a playback time (ms) or progress value onto a journey made
of consecutive segments. Each segment owns the half-open time slice
``[start_time, end_time)``; the last positive-length segment also owns its
end, and zero-length segments never match a lookup.

Track segments resolve positions by distance along the track; transport
segments interpolate linearly between their endpoints.
"""

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from . import constants
from . import geodesy
from .models import (
    Journey,
    JourneySegment,
    Position,
    Track,
    TrackSegment,
    TransportMode,
    TransportSegment,
    Waypoint,
)

logger = logging.getLogger(__name__)

MS_PER_HOUR = 3600.0 * 1000.0

SEGMENT_TRACK = "track"
SEGMENT_TRANSPORT = "transport"


def segment_type(segment: JourneySegment) -> str:
    """
    Tag of a journey segment variant.

    Raises:
        TypeError: If ``segment`` is not a known journey segment type.
    """
    if isinstance(segment, TrackSegment):
        return SEGMENT_TRACK
    if isinstance(segment, TransportSegment):
        return SEGMENT_TRANSPORT
    raise TypeError(f"Unknown journey segment type: {type(segment).__name__}")


def transport_speed(mode: Union[TransportMode, str]) -> float:
    """Nominal speed (km/h) for a transport mode; unknown modes get the default."""
    value = mode.value if isinstance(mode, TransportMode) else str(mode)
    return constants.TRANSPORT_SPEEDS_KMH.get(value, constants.DEFAULT_TRANSPORT_SPEED_KMH)


def estimate_transport_duration(mode: Union[TransportMode, str], distance_km: float) -> float:
    """Duration in ms to cover ``distance_km`` at the mode's nominal speed."""
    return distance_km / transport_speed(mode) * MS_PER_HOUR


def check_duration(duration: float) -> float:
    """Validate a segment duration in ms and return it as a float."""
    duration = float(duration)
    if not math.isfinite(duration) or duration < 0:
        raise ValueError(f"Segment duration must be a non-negative number, got {duration}")
    return duration


def make_transport_segment(mode: Union[TransportMode, str], origin: Waypoint,
                           destination: Waypoint,
                           duration: Optional[float] = None) -> TransportSegment:
    """
    Build a transport segment, measuring its great-circle distance.

    Args:
        mode: Transport mode.
        origin: Start waypoint.
        destination: End waypoint.
        duration: Authored duration in ms; estimated from the nominal speed
            of ``mode`` when omitted.

    Raises:
        ValueError: If ``duration`` is negative or not finite.
    """
    mode = TransportMode(mode)
    distance = geodesy.haversine_km(origin.lat, origin.lon, destination.lat, destination.lon)
    if duration is None:
        duration = estimate_transport_duration(mode, distance)
    return TransportSegment(
        mode=mode,
        origin=origin,
        destination=destination,
        duration=check_duration(duration),
        distance=distance,
    )


def track_playback_duration(track: Track) -> Tuple[float, bool]:
    """
    Playback duration (ms) for a single track.

    Uses the recorded duration when the track's stats are time-backed,
    otherwise the distance at PLAYBACK_ESTIMATED_SPEED_KMH.

    Returns:
        Tuple of (duration in ms, whether it was estimated).
    """
    recorded = track.stats.total_duration
    if recorded > 0 and not track.stats.duration_estimated:
        return recorded * MS_PER_HOUR, False
    estimate = track.stats.total_distance / constants.PLAYBACK_ESTIMATED_SPEED_KMH
    return estimate * MS_PER_HOUR, True


def make_track_segment(track: Track, duration: Optional[float] = None) -> TrackSegment:
    """
    Track segment for ``track``; the duration defaults to its playback duration.

    Raises:
        ValueError: If ``duration`` is negative or not finite.
    """
    if duration is None:
        duration, _ = track_playback_duration(track)
    return TrackSegment(track_id=track.id, duration=check_duration(duration))


def point_at_distance(track: Track, distance_km: float) -> Position:
    """
    Interpolate a position at a distance along a track.

    The bracketing pair is located by cumulative distance. Latitude,
    longitude, elevation and speed are interpolated linearly; heart rate and
    time are interpolated when both neighbours carry them, otherwise the
    lower neighbour's value is used.

    Args:
        track: Track with at least one point.
        distance_km: Target distance; clamped to the track.

    Returns:
        Position with ``segment_index`` 0; callers re-tag it.
    """
    points = track.points
    distances = track.distances
    target = float(np.clip(distance_km, 0.0, distances[-1]))

    hi = int(np.searchsorted(distances, target, side="left"))
    if hi <= 0 or len(points) == 1:
        lower = upper = points[0]
        t = 0.0
    elif hi >= len(points):
        lower = upper = points[-1]
        t = 0.0
    else:
        lower, upper = points[hi - 1], points[hi]
        span = upper.distance - lower.distance
        t = (target - lower.distance) / span if span > 0 else 0.0

    def lerp(a, b):
        return a + (b - a) * t

    heart_rate = lower.heart_rate
    if lower.heart_rate is not None and upper.heart_rate is not None:
        heart_rate = lerp(lower.heart_rate, upper.heart_rate)

    time = lower.time
    if lower.time is not None and upper.time is not None:
        time = lower.time + (upper.time - lower.time) * t

    return Position(
        lat=lerp(lower.lat, upper.lat),
        lon=lerp(lower.lon, upper.lon),
        elevation=lerp(lower.elevation, upper.elevation),
        distance=target,
        speed=lerp(lower.speed, upper.speed),
        heart_rate=heart_rate,
        time=time,
        segment_index=0,
        segment_type=SEGMENT_TRACK,
        track_id=track.id,
    )


def point_on_transport(segment: TransportSegment, progress: float) -> Position:
    """Linear position between a transport segment's endpoints."""
    origin, destination = segment.origin, segment.destination
    return Position(
        lat=origin.lat + (destination.lat - origin.lat) * progress,
        lon=origin.lon + (destination.lon - origin.lon) * progress,
        elevation=0.0,
        distance=segment.distance * progress,
        speed=transport_speed(segment.mode),
        heart_rate=None,
        time=None,
        segment_index=0,
        segment_type=SEGMENT_TRANSPORT,
        transport_mode=segment.mode,
    )


@dataclass(frozen=True)
class SegmentTiming:
    """Time slice of one journey segment. Times are in ms from journey start."""

    index: int
    segment: JourneySegment
    start_time: float
    end_time: float
    track: Optional[Track] = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def segment_type(self) -> str:
        return segment_type(self.segment)

    @property
    def distance(self) -> float:
        if isinstance(self.segment, TransportSegment):
            return self.segment.distance
        return self.track.total_distance if self.track is not None else 0.0

    def contains(self, elapsed: float, is_last: bool) -> bool:
        if self.duration <= 0:
            return False
        if is_last:
            return self.start_time <= elapsed <= self.end_time
        return self.start_time <= elapsed < self.end_time


@dataclass(frozen=True)
class Timeline:
    """Ordered segment timings plus lookups from elapsed time to position."""

    timings: Tuple[SegmentTiming, ...] = ()
    duration_estimated: bool = False

    @property
    def total_duration(self) -> float:
        return self.timings[-1].end_time if self.timings else 0.0

    @property
    def total_distance(self) -> float:
        return float(sum(t.distance for t in self.timings))

    def progress_at(self, elapsed: float) -> float:
        total = self.total_duration
        return min(1.0, max(0.0, elapsed / total)) if total > 0 else 0.0

    def locate(self, elapsed: float) -> Tuple[int, float]:
        """
        Find the segment owning ``elapsed`` ms.

        Returns:
            Tuple of (segment index, progress within the segment in [0, 1]).
            With no positive-length segment the result is (0, 0.0).
        """
        positive = [t for t in self.timings if t.duration > 0]
        if not positive:
            return 0, 0.0

        elapsed = min(max(elapsed, 0.0), self.total_duration)
        last = positive[-1]
        for timing in positive:
            if timing.contains(elapsed, is_last=timing is last):
                return timing.index, (elapsed - timing.start_time) / timing.duration
        return last.index, 1.0

    def position_at_time(self, elapsed: float) -> Optional[Position]:
        """
        Interpolated position at ``elapsed`` ms.

        Returns:
            Position, or None when the timeline is empty or the owning track
            segment references a track that is not loaded.
        """
        if not self.timings:
            return None

        index, progress = self.locate(elapsed)
        timing = self.timings[index]
        segment = timing.segment

        if isinstance(segment, TrackSegment):
            if timing.track is None or not timing.track.points:
                return None
            position = point_at_distance(timing.track, progress * timing.track.total_distance)
        elif isinstance(segment, TransportSegment):
            position = point_on_transport(segment, progress)
        else:
            raise TypeError(f"Unknown journey segment type: {type(segment).__name__}")

        return dataclasses.replace(position, segment_index=index)

    def position_at_progress(self, progress: float) -> Optional[Position]:
        progress = min(1.0, max(0.0, progress))
        return self.position_at_time(progress * self.total_duration)

    def bearing_at_time(self, elapsed: float) -> float:
        """
        Heading (degrees) at ``elapsed`` ms.

        On a track, looks ahead up to BEARING_LOOKAHEAD_POINTS points from
        the current one. On a transport leg, it is the bearing from origin to
        destination. Returns 0.0 where no heading can be computed.
        """
        if not self.timings:
            return 0.0

        index, progress = self.locate(elapsed)
        timing = self.timings[index]
        segment = timing.segment

        if isinstance(segment, TransportSegment):
            return geodesy.bearing_deg(
                segment.origin.lat, segment.origin.lon,
                segment.destination.lat, segment.destination.lon,
            )
        if not isinstance(segment, TrackSegment):
            raise TypeError(f"Unknown journey segment type: {type(segment).__name__}")

        track = timing.track
        if track is None or len(track.points) < 2:
            return 0.0

        target = progress * track.total_distance
        current = int(np.searchsorted(track.distances, target, side="right")) - 1
        current = min(max(current, 0), len(track.points) - 1)
        ahead = min(current + constants.BEARING_LOOKAHEAD_POINTS, len(track.points) - 1)
        if ahead == current:
            current = max(0, current - 1)

        a, b = track.points[current], track.points[ahead]
        if a.lat == b.lat and a.lon == b.lon:
            return 0.0
        return geodesy.bearing_deg(a.lat, a.lon, b.lat, b.lon)

    def completed_coordinates(self, elapsed: float) -> List[Tuple[float, float]]:
        """
        (lon, lat) trail from the journey start up to the position at ``elapsed``.

        Segments before the current one contribute all their coordinates; the
        current one contributes the points already passed plus the
        interpolated current position.
        """
        if not self.timings:
            return []

        index, progress = self.locate(elapsed)
        coordinates: List[Tuple[float, float]] = []

        for timing in self.timings[:index]:
            coordinates.extend(_segment_coordinates(timing))

        timing = self.timings[index]
        segment = timing.segment
        if isinstance(segment, TrackSegment):
            if timing.track is not None and timing.track.points:
                target = progress * timing.track.total_distance
                passed = int(np.searchsorted(timing.track.distances, target, side="right"))
                coordinates.extend((p.lon, p.lat) for p in timing.track.points[:passed])
        elif isinstance(segment, TransportSegment):
            coordinates.append((segment.origin.lon, segment.origin.lat))
        else:
            raise TypeError(f"Unknown journey segment type: {type(segment).__name__}")

        position = self.position_at_time(elapsed)
        if position is not None:
            coordinates.append((position.lon, position.lat))
        return coordinates

    def elevation_profile(self) -> List[Dict]:
        """
        Elevation samples along the whole timeline.

        Each sample carries cumulative journey distance (km), elevation (m),
        the timeline progress at which playback reaches it, and its segment.
        Transport legs contribute their two endpoints at elevation 0.
        """
        total = self.total_duration
        profile = []
        offset = 0.0

        for timing in self.timings:
            kind = timing.segment_type
            if isinstance(timing.segment, TrackSegment):
                track = timing.track
                if track is None or not track.points:
                    continue
                length = track.total_distance
                for point in track.points:
                    fraction = point.distance / length if length > 0 else 0.0
                    profile.append({
                        "distance": offset + point.distance,
                        "elevation": point.elevation,
                        "progress": _progress(timing.start_time + fraction * timing.duration, total),
                        "segment_index": timing.index,
                        "segment_type": kind,
                    })
                offset += length
            else:
                for fraction in (0.0, 1.0):
                    profile.append({
                        "distance": offset + fraction * timing.segment.distance,
                        "elevation": 0.0,
                        "progress": _progress(timing.start_time + fraction * timing.duration, total),
                        "segment_index": timing.index,
                        "segment_type": kind,
                    })
                offset += timing.segment.distance

        return profile


def _progress(elapsed: float, total: float) -> float:
    return min(1.0, elapsed / total) if total > 0 else 0.0


def _segment_coordinates(timing: SegmentTiming) -> List[Tuple[float, float]]:
    segment = timing.segment
    if isinstance(segment, TransportSegment):
        return [(segment.origin.lon, segment.origin.lat),
                (segment.destination.lon, segment.destination.lat)]
    if isinstance(segment, TrackSegment):
        if timing.track is None:
            return []
        return [(p.lon, p.lat) for p in timing.track.points]
    raise TypeError(f"Unknown journey segment type: {type(segment).__name__}")


def build_journey_timeline(journey: Journey, tracks: Mapping[str, Track]) -> Timeline:
    """
    Lay out a journey's segments back to back.

    Segment durations are taken as authored. A track segment whose track is
    missing keeps its time slice but resolves no position.

    Args:
        journey: Journey with ordered segments.
        tracks: Loaded tracks keyed by id.

    Raises:
        TypeError: If a segment is of an unknown type.
        ValueError: If a segment duration is negative or not finite.
    """
    timings = []
    elapsed = 0.0
    for index, segment in enumerate(journey.segments):
        kind = segment_type(segment)
        duration = check_duration(segment.duration)
        track = tracks.get(segment.track_id) if kind == SEGMENT_TRACK else None
        if kind == SEGMENT_TRACK and track is None:
            logger.warning("Journey segment %s references unknown track %s", segment.id, segment.track_id)
        timings.append(SegmentTiming(
            index=index,
            segment=segment,
            start_time=elapsed,
            end_time=elapsed + duration,
            track=track,
        ))
        elapsed += duration
    return Timeline(timings=tuple(timings))


def build_track_timeline(track: Optional[Track]) -> Timeline:
    """Single-segment timeline for replaying one track on its own."""
    if track is None:
        return Timeline()
    duration, estimated = track_playback_duration(track)
    segment = TrackSegment(track_id=track.id, duration=duration)
    timing = SegmentTiming(index=0, segment=segment, start_time=0.0, end_time=duration, track=track)
    return Timeline(timings=(timing,), duration_estimated=estimated)
