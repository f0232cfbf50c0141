import dataclasses

import pytest

from trailplay import journey
from trailplay.geodesy import haversine_km
from trailplay.models import Journey, TrackSegment, TransportMode, TransportSegment, Waypoint


@pytest.fixture
def two_track_journey(timed_track, untimed_track):
    trip = Journey(name="Trip", segments=[
        TrackSegment(track_id=timed_track.id, duration=10_000),
        TrackSegment(track_id=untimed_track.id, duration=5_000),
    ])
    tracks = {timed_track.id: timed_track, untimed_track.id: untimed_track}
    return journey.build_journey_timeline(trip, tracks)


def test_progress_maps_into_second_segment(two_track_journey):
    timeline = two_track_journey
    assert timeline.total_duration == 15_000

    elapsed = 0.8 * timeline.total_duration
    index, progress = timeline.locate(elapsed)
    assert index == 1
    assert elapsed - timeline.timings[1].start_time == pytest.approx(2_000)
    assert progress == pytest.approx(0.4)


def test_boundary_belongs_to_next_segment(two_track_journey):
    assert two_track_journey.locate(10_000) == (1, 0.0)


def test_end_belongs_to_last_segment(two_track_journey, untimed_track):
    assert two_track_journey.locate(15_000) == (1, 1.0)
    position = two_track_journey.position_at_progress(1.0)
    last = untimed_track.points[-1]
    assert (position.lat, position.lon) == pytest.approx((last.lat, last.lon))


def test_zero_length_segments_never_match(timed_track):
    trip = Journey(name="Trip", segments=[
        TrackSegment(track_id=timed_track.id, duration=0),
        TrackSegment(track_id=timed_track.id, duration=1_000),
        TrackSegment(track_id=timed_track.id, duration=0),
    ])
    timeline = journey.build_journey_timeline(trip, {timed_track.id: timed_track})
    assert timeline.locate(0) == (1, 0.0)
    assert timeline.locate(1_000) == (1, 1.0)


def test_empty_timeline():
    timeline = journey.Timeline()
    assert timeline.total_duration == 0.0
    assert timeline.locate(5) == (0, 0.0)
    assert timeline.position_at_progress(0.5) is None
    assert timeline.completed_coordinates(0) == []


def test_track_position_interpolates_by_distance(timed_track):
    timeline = journey.build_track_timeline(timed_track)
    position = timeline.position_at_progress(0.25)

    assert position.segment_type == "track"
    assert position.track_id == timed_track.id
    assert position.lat == pytest.approx(0.0)
    assert position.lon == pytest.approx(0.005, rel=1e-6)
    assert position.elevation == pytest.approx(11.0)
    assert position.heart_rate == pytest.approx(125.0)
    assert position.distance == pytest.approx(timed_track.total_distance / 4)


def test_track_position_at_start_is_first_point(timed_track):
    position = journey.build_track_timeline(timed_track).position_at_progress(0.0)
    first = timed_track.points[0]
    assert (position.lat, position.lon, position.elevation) == (first.lat, first.lon, first.elevation)
    assert position.time == first.time


def test_recorded_track_duration(timed_track):
    duration, estimated = journey.track_playback_duration(timed_track)
    assert duration == pytest.approx(120_000)
    assert estimated is False


def test_untimed_track_duration_is_estimated_at_playback_speed(untimed_track):
    duration, estimated = journey.track_playback_duration(untimed_track)
    assert estimated is True
    assert duration == pytest.approx(untimed_track.total_distance / 10 * 3_600_000)
    assert journey.build_track_timeline(untimed_track).duration_estimated is True


def test_transport_segment_estimates_and_interpolates():
    segment = journey.make_transport_segment(
        TransportMode.TRAIN, Waypoint(0.0, 0.0, "A"), Waypoint(0.0, 1.0, "B"),
    )
    assert segment.distance == pytest.approx(haversine_km(0, 0, 0, 1))
    assert segment.duration == pytest.approx(segment.distance / 80 * 3_600_000)

    timeline = journey.build_journey_timeline(Journey(name="T", segments=[segment]), {})
    position = timeline.position_at_progress(0.5)
    assert position.segment_type == "transport"
    assert position.transport_mode is TransportMode.TRAIN
    assert position.lon == pytest.approx(0.5)
    assert position.elevation == 0.0
    assert position.speed == 80.0
    assert timeline.bearing_at_time(0) == pytest.approx(90.0)


def test_unknown_mode_speed_defaults():
    assert journey.transport_speed("hovercraft") == 30.0
    assert journey.transport_speed(TransportMode.PLANE) == 500.0


def test_authored_transport_duration_is_kept():
    segment = journey.make_transport_segment("car", Waypoint(0, 0), Waypoint(1, 1), duration=42)
    assert segment.duration == 42.0
    assert segment.mode is TransportMode.CAR


@pytest.mark.parametrize("bad", [-4_000, float("nan"), float("inf")])
def test_segment_duration_must_be_non_negative_and_finite(timed_track, bad):
    with pytest.raises(ValueError):
        journey.make_transport_segment("car", Waypoint(0, 0), Waypoint(1, 1), duration=bad)
    with pytest.raises(ValueError):
        journey.make_track_segment(timed_track, duration=bad)


def test_timeline_rejects_negative_segment_duration(timed_track):
    trip = Journey(name="Trip", segments=[TrackSegment(track_id=timed_track.id, duration=-1)])
    with pytest.raises(ValueError):
        journey.build_journey_timeline(trip, {timed_track.id: timed_track})


def test_unknown_segment_variant_raises():
    with pytest.raises(TypeError):
        journey.segment_type(object())
    with pytest.raises(TypeError):
        journey.build_journey_timeline(Journey(name="bad", segments=["nope"]), {})


def test_missing_track_keeps_slice_without_position(timed_track):
    trip = Journey(name="Trip", segments=[
        TrackSegment(track_id="track-gone", duration=1_000),
        TrackSegment(track_id=timed_track.id, duration=1_000),
    ])
    timeline = journey.build_journey_timeline(trip, {timed_track.id: timed_track})
    assert timeline.total_duration == 2_000
    assert timeline.position_at_time(500) is None
    assert timeline.position_at_time(1_500).segment_index == 1


def test_completed_coordinates_end_at_current_position(timed_track):
    timeline = journey.build_track_timeline(timed_track)
    trail = timeline.completed_coordinates(timeline.total_duration * 0.75)
    assert trail[:2] == [(0.0, 0.0), (0.01, 0.0)]
    assert trail[-1][0] == pytest.approx(0.015, rel=1e-6)


def test_bearing_along_eastward_track(timed_track):
    timeline = journey.build_track_timeline(timed_track)
    assert timeline.bearing_at_time(0) == pytest.approx(90.0)
    assert timeline.bearing_at_time(timeline.total_duration) == pytest.approx(90.0)


def test_elevation_profile_spans_journey(two_track_journey, timed_track, untimed_track):
    profile = two_track_journey.elevation_profile()
    assert len(profile) == len(timed_track.points) + len(untimed_track.points)
    assert profile[0]["progress"] == 0.0
    assert profile[-1]["progress"] == pytest.approx(1.0)
    assert profile[-1]["distance"] == pytest.approx(two_track_journey.total_distance)
    assert {p["segment_index"] for p in profile} == {0, 1}


def test_segment_duration_update_via_replace(two_track_journey):
    segment = two_track_journey.timings[0].segment
    updated = dataclasses.replace(segment, duration=1.0)
    assert updated.id == segment.id
    assert isinstance(updated, TrackSegment)
    assert not isinstance(updated, TransportSegment)
