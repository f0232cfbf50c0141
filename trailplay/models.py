"""
Data Models for Track Analysis and Playback

Immutable value types produced by the parser (points, stats, activity
segments, tracks), the journey segment variants authored by the user, and
the playback state snapshot published by the timeline engine.

Units: distance in km, speed in km/h, elevation in metres, Stats durations
in hours, playback times in milliseconds.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import cached_property
from typing import List, Optional, Tuple, Union

import numpy as np


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class TrackPoint:
    """A single accepted track sample.

    Attributes:
        lat: Latitude in decimal degrees, within [-90, 90].
        lon: Longitude in decimal degrees, within [-180, 180].
        elevation: Elevation in metres (0 when the source had none).
        time: Timezone-aware UTC timestamp, or None.
        heart_rate: Beats per minute within (0, 300), or None.
        index: Position among accepted points.
        distance: Cumulative distance from the track start in km.
        speed: Speed in km/h; always populated after fill-in.
        speed_estimated: True when ``speed`` was interpolated or synthesized.
    """

    lat: float
    lon: float
    elevation: float
    time: Optional[datetime]
    heart_rate: Optional[float]
    index: int
    distance: float
    speed: float
    speed_estimated: bool = False


@dataclass(frozen=True)
class Bounds:
    north: float
    south: float
    east: float
    west: float
    center: Tuple[float, float]  # (lon, lat)


@dataclass(frozen=True)
class Stats:
    """Track-level summary, computed once at parse time.

    ``total_duration`` is in hours. When ``duration_estimated`` is True it was
    derived from distance at an assumed speed, not from timestamps.
    """

    total_distance: float
    total_duration: float
    elevation_gain: float
    avg_speed: float
    min_elevation: float
    max_elevation: float
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    has_time_data: bool
    has_heart_rate_data: bool
    avg_heart_rate: int
    min_heart_rate: Optional[float]
    max_heart_rate: Optional[float]
    duration_estimated: bool = False
    heart_rate_data_points: int = 0
    elevation_loss: float = 0.0
    max_speed: float = 0.0
    moving_time: float = 0.0
    avg_moving_speed: float = 0.0
    point_count: int = 0


class ActivityType(str, Enum):
    RUNNING = "running"
    WALKING = "walking"
    CYCLING = "cycling"
    SWIMMING = "swimming"


@dataclass(frozen=True)
class ActivitySegment:
    """A maximal run of consecutive points sharing one activity class."""

    activity: ActivityType
    start_index: int
    end_index: int
    start_distance: float
    end_distance: float
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    distance: float
    duration_hours: Optional[float]
    avg_speed: Optional[float]
    point_count: int


@dataclass(frozen=True)
class Track:
    """A finalized, ordered point sequence with its derived statistics."""

    id: str
    name: str
    points: Tuple[TrackPoint, ...]
    stats: Stats
    bounds: Optional[Bounds]
    activity_segments: Tuple[ActivitySegment, ...]

    @property
    def total_distance(self) -> float:
        return self.stats.total_distance

    @cached_property
    def distances(self) -> np.ndarray:
        """Cumulative distances as an array, for position lookups."""
        return np.array([p.distance for p in self.points], dtype=float)


class TransportMode(str, Enum):
    CAR = "car"
    BUS = "bus"
    TRAIN = "train"
    PLANE = "plane"
    BIKE = "bike"
    WALK = "walk"
    FERRY = "ferry"


@dataclass(frozen=True)
class Waypoint:
    lat: float
    lon: float
    name: Optional[str] = None


@dataclass(frozen=True)
class TrackSegment:
    """Journey segment replaying a parsed track over ``duration`` ms."""

    track_id: str
    duration: float
    id: str = field(default_factory=lambda: new_id("segment"))


@dataclass(frozen=True)
class TransportSegment:
    """Journey segment moving between two places by some transport mode.

    ``duration`` is in ms and ``distance`` in km.
    """

    mode: TransportMode
    origin: Waypoint
    destination: Waypoint
    duration: float
    distance: float
    id: str = field(default_factory=lambda: new_id("transport"))


JourneySegment = Union[TrackSegment, TransportSegment]


@dataclass
class Journey:
    """An authored, ordered sequence of segments played as one timeline."""

    name: str
    segments: List[JourneySegment] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id("journey"))

    @property
    def total_duration(self) -> float:
        return float(sum(segment.duration for segment in self.segments))


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass(frozen=True)
class PlaybackState:
    """Read-only playback snapshot. Times are in milliseconds."""

    status: PlaybackStatus = PlaybackStatus.IDLE
    current_time: float = 0.0
    total_duration: float = 0.0
    progress: float = 0.0
    speed: float = 1.0
    current_segment_index: int = 0
    segment_progress: float = 0.0
    duration_estimated: bool = False

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING


@dataclass(frozen=True)
class Position:
    """Interpolated position on the timeline at some progress value."""

    lat: float
    lon: float
    elevation: float
    distance: float
    speed: float
    heart_rate: Optional[float]
    time: Optional[datetime]
    segment_index: int
    segment_type: str
    track_id: Optional[str] = None
    transport_mode: Optional[TransportMode] = None
