"""
Constants for Track Analytics and Playback

This module defines path constants, policy thresholds and runtime settings
used throughout the track analysis and timeline engine.
"""

import os
from pathlib import Path

# GPX data folder is one level up from trailplay/
DATA_DIR = Path(os.environ.get("TRAILPLAY_DATA_DIR", Path(__file__).parent.parent / "GPX Data"))

# Geodesy
EARTH_RADIUS_KM = 6371.0

# Coordinate validity
MIN_LAT, MAX_LAT = -90.0, 90.0
MIN_LON, MAX_LON = -180.0, 180.0

# Heart rate values outside (HR_MIN, HR_MAX) are treated as sensor noise
HR_MIN = 0.0
HR_MAX = 300.0

# Synthetic speed generation for tracks without any time data
SYNTHETIC_BASE_SPEED_KMH = 8.0
SLOPE_THRESHOLD_M = 5.0
UPHILL_SPEED_FACTOR = 0.7
DOWNHILL_SPEED_FACTOR = 1.3
JITTER_MIN = 0.8
JITTER_SPAN = 0.4

# Duration estimates when a track has no usable timestamps
PARSER_ESTIMATED_SPEED_KMH = 5.0
PLAYBACK_ESTIMATED_SPEED_KMH = 10.0

# Legs slower than this are not counted as moving
MOVING_SPEED_THRESHOLD_KMH = 0.5

# Activity classification thresholds (km/h). Checked in this order:
# swimming below SWIMMING, cycling above CYCLING, cycling above RUNNING.
ACTIVITY_SPEED_THRESHOLDS = {
    "swimming": 3.0,
    "running": 15.0,
    "cycling": 30.0,
}

# Nominal transport speeds (km/h) for estimating transport segment durations
TRANSPORT_SPEEDS_KMH = {
    "car": 50.0,
    "bus": 30.0,
    "train": 80.0,
    "plane": 500.0,
    "bike": 15.0,
    "walk": 4.0,
    "ferry": 25.0,
}
DEFAULT_TRANSPORT_SPEED_KMH = 30.0

# Playback
FRAME_INTERVAL_S = 1.0 / 60.0
DEFAULT_SKIP_SECONDS = 10.0
BEARING_LOOKAHEAD_POINTS = 10

# Background parsing
PARSE_EXECUTOR = os.environ.get("TRAILPLAY_PARSE_EXECUTOR", "process")
PARSE_WORKERS = int(os.environ.get("TRAILPLAY_PARSE_WORKERS", "2"))

LOG_LEVEL = os.environ.get("TRAILPLAY_LOG_LEVEL", "INFO")
