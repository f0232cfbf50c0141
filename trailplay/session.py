"""
In-Memory Session State

This module holds everything a running process knows about: loaded tracks,
the active track, the authored journey and the playback controller. Every
change that affects timing refreshes the controller's timeline.
"""

import dataclasses
import logging
from typing import Dict, List, Optional, Union

from . import journey
from . import telemetry
from .models import (
    Journey,
    JourneySegment,
    Track,
    TrackSegment,
    TransportMode,
    Waypoint,
)
from .playback import PlaybackController

logger = logging.getLogger(__name__)


class Session:
    """
    Tracks, active track, journey and playback for one process.

    With a journey holding at least one segment, playback follows the
    journey. Otherwise it replays the active track on its own.
    """

    def __init__(self):
        self.tracks: Dict[str, Track] = {}
        self.active_track_id: Optional[str] = None
        self.journey: Optional[Journey] = None
        self.playback = PlaybackController(self.build_timeline)

    # ------------------------------------------------------------------
    # Timeline
    # ------------------------------------------------------------------

    def build_timeline(self) -> journey.Timeline:
        if self.journey is not None and self.journey.segments:
            return journey.build_journey_timeline(self.journey, self.tracks)
        return journey.build_track_timeline(self.active_track)

    def _changed(self) -> None:
        self.playback.refresh()

    # ------------------------------------------------------------------
    # Tracks
    # ------------------------------------------------------------------

    @property
    def active_track(self) -> Optional[Track]:
        if self.active_track_id is None:
            return None
        return self.tracks.get(self.active_track_id)

    def list_tracks(self) -> List[Track]:
        return list(self.tracks.values())

    def get_track(self, track_id: str) -> Track:
        """
        Raises:
            KeyError: If no track with ``track_id`` is loaded.
        """
        try:
            return self.tracks[track_id]
        except KeyError:
            raise KeyError(f"Track not found: {track_id}") from None

    def add_track(self, track: Track) -> Track:
        """
        Store a parsed track.

        The first track becomes active. When a journey exists, the track is
        appended to it as a track segment with its playback duration.
        """
        self.tracks[track.id] = track
        if self.active_track_id is None:
            self.active_track_id = track.id
        if self.journey is not None:
            self.journey.segments.append(journey.make_track_segment(track))
        logger.info("Added track %s (%s)", track.id, track.name)
        self._changed()
        return track

    def remove_track(self, track_id: str) -> None:
        """
        Remove a track and every journey segment that references it.

        Raises:
            KeyError: If no track with ``track_id`` is loaded.
        """
        self.get_track(track_id)
        del self.tracks[track_id]

        if self.journey is not None:
            self.journey.segments = [
                s for s in self.journey.segments
                if not (isinstance(s, TrackSegment) and s.track_id == track_id)
            ]
        if self.active_track_id == track_id:
            self.active_track_id = next(iter(self.tracks), None)
        self._changed()

    def set_active_track(self, track_id: str) -> None:
        self.get_track(track_id)
        self.active_track_id = track_id
        self._changed()

    # ------------------------------------------------------------------
    # Journey
    # ------------------------------------------------------------------

    def _require_journey(self) -> Journey:
        if self.journey is None:
            raise ValueError("No journey; create one first")
        return self.journey

    def create_journey(self, name: str) -> Journey:
        """Start a new, empty journey, replacing any existing one."""
        self.journey = Journey(name=name)
        self._changed()
        return self.journey

    def clear_journey(self) -> None:
        self.journey = None
        self._changed()

    def add_segment(self, segment: JourneySegment) -> JourneySegment:
        """
        Append a segment to the journey.

        Raises:
            ValueError: If there is no journey.
            TypeError: If ``segment`` is not a journey segment.
        """
        journey.segment_type(segment)
        self._require_journey().segments.append(segment)
        self._changed()
        return segment

    def add_track_segment(self, track_id: str, duration: Optional[float] = None) -> TrackSegment:
        return self.add_segment(journey.make_track_segment(self.get_track(track_id), duration))

    def add_transport_segment(self, mode: Union[TransportMode, str], origin: Waypoint,
                              destination: Waypoint, duration: Optional[float] = None):
        segment = journey.make_transport_segment(mode, origin, destination, duration)
        return self.add_segment(segment)

    def _segment_position(self, segment_id: str) -> int:
        for position, segment in enumerate(self._require_journey().segments):
            if segment.id == segment_id:
                return position
        raise KeyError(f"Journey segment not found: {segment_id}")

    def remove_segment(self, segment_id: str) -> None:
        position = self._segment_position(segment_id)
        del self.journey.segments[position]
        self._changed()

    def move_segment(self, segment_id: str, new_position: int) -> None:
        """Move a segment to ``new_position`` (clamped to the segment list)."""
        position = self._segment_position(segment_id)
        segments = self.journey.segments
        segment = segments.pop(position)
        new_position = min(max(new_position, 0), len(segments))
        segments.insert(new_position, segment)
        self._changed()

    def update_segment_duration(self, segment_id: str, duration: float) -> JourneySegment:
        """
        Raises:
            KeyError: If the segment does not exist.
            ValueError: If ``duration`` is negative or not finite.
        """
        duration = journey.check_duration(duration)
        position = self._segment_position(segment_id)
        segment = dataclasses.replace(self.journey.segments[position], duration=duration)
        self.journey.segments[position] = segment
        self._changed()
        return segment

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def journey_payload(self) -> Optional[Dict]:
        if self.journey is None:
            return None
        return {
            "id": self.journey.id,
            "name": self.journey.name,
            "total_duration": self.journey.total_duration,
            "segments": [
                dict(telemetry.to_plain_dict(s), type=journey.segment_type(s))
                for s in self.journey.segments
            ],
        }

    def playback_snapshot(self) -> Dict:
        """Playback state, position, bearing and completed trail."""
        state = self.playback.state
        at = state.current_time
        snapshot = telemetry.playback_snapshot(
            state,
            self.playback.position(at),
            self.playback.bearing(at),
        )
        snapshot["completed_coordinates"] = [list(c) for c in self.playback.completed_coordinates(at)]
        return snapshot
