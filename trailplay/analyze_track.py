"""
Track Analysis and Playback Module

Parses GPS tracks into canonical Track models, derives statistics and
activity segments, and maps playback time onto positions across single
tracks or multi-segment journeys.

This file is the public entry point: it imports and re-exports the
functions and types of the individual modules.
"""

# Import constants
from .constants import DATA_DIR, TRANSPORT_SPEEDS_KMH

# Import errors
from .errors import (
    ParseError,
    InvalidFormatError,
    NoTrackPointsError,
)

# Import models
from .models import (
    TrackPoint,
    Bounds,
    Stats,
    ActivityType,
    ActivitySegment,
    Track,
    TransportMode,
    Waypoint,
    TrackSegment,
    TransportSegment,
    Journey,
    PlaybackStatus,
    PlaybackState,
    Position,
)

# Import geodesy functions
from .geodesy import (
    haversine_km,
    bearing_deg,
    compute_bounds,
)

# Import data loading functions
from .data_loading import (
    RawPointSource,
    decode_gpx,
    load_gpx_file,
    list_datasets,
)

# Import parser functions
from .parser import (
    parse_point_source,
    parse_gpx,
    parse_gpx_file,
)

# Import analysis functions
from .stats import compute_stats
from .activity import classify_speed, detect_activity_segments

# Import telemetry functions
from .telemetry import (
    track_to_payload,
    track_from_payload,
    track_to_geojson,
)

# Import journey functions
from .journey import (
    Timeline,
    build_journey_timeline,
    build_track_timeline,
    make_transport_segment,
    make_track_segment,
    track_playback_duration,
)

# Import playback engine
from .playback import PlaybackController, AnimationLoop

# Import background parsing
from .worker import BackgroundParser

# Import export functions
from .export import (
    export_track_csv,
    export_activity_segments_csv,
)

# Import session state
from .session import Session

__all__ = [
    # Constants
    "DATA_DIR",
    "TRANSPORT_SPEEDS_KMH",
    # Errors
    "ParseError",
    "InvalidFormatError",
    "NoTrackPointsError",
    # Models
    "TrackPoint",
    "Bounds",
    "Stats",
    "ActivityType",
    "ActivitySegment",
    "Track",
    "TransportMode",
    "Waypoint",
    "TrackSegment",
    "TransportSegment",
    "Journey",
    "PlaybackStatus",
    "PlaybackState",
    "Position",
    # Geodesy
    "haversine_km",
    "bearing_deg",
    "compute_bounds",
    # Data loading
    "RawPointSource",
    "decode_gpx",
    "load_gpx_file",
    "list_datasets",
    # Parser
    "parse_point_source",
    "parse_gpx",
    "parse_gpx_file",
    # Analysis
    "compute_stats",
    "classify_speed",
    "detect_activity_segments",
    # Telemetry
    "track_to_payload",
    "track_from_payload",
    "track_to_geojson",
    # Journey
    "Timeline",
    "build_journey_timeline",
    "build_track_timeline",
    "make_transport_segment",
    "make_track_segment",
    "track_playback_duration",
    # Playback
    "PlaybackController",
    "AnimationLoop",
    # Background parsing
    "BackgroundParser",
    # Export
    "export_track_csv",
    "export_activity_segments_csv",
    # Session
    "Session",
]
