from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from trailplay.data_loading import RawPointSource
from trailplay.parser import parse_point_source

GPX_NS = "http://www.topografix.com/GPX/1/1"
T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


def _point_xml(tag, point):
    parts = [f'<{tag} lat="{point["lat"]}" lon="{point["lon"]}">']
    if point.get("ele") is not None:
        parts.append(f"<ele>{point['ele']}</ele>")
    if point.get("time") is not None:
        parts.append(f"<time>{point['time']}</time>")
    if point.get("hr") is not None:
        parts.append(
            "<extensions><gpxtpx:TrackPointExtension>"
            f"<gpxtpx:hr>{point['hr']}</gpxtpx:hr>"
            "</gpxtpx:TrackPointExtension></extensions>"
        )
    parts.append(f"</{tag}>")
    return "".join(parts)


def build_gpx(points, tier="trkpt", name=None):
    body = "".join(_point_xml(tier, p) for p in points)
    name_xml = f"<name>{name}</name>" if name else ""
    if tier == "trkpt":
        content = f"<trk>{name_xml}<trkseg>{body}</trkseg></trk>"
    elif tier == "rtept":
        content = f"<rte>{name_xml}{body}</rte>"
    else:
        content = body
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<gpx version="1.1" creator="tests" xmlns="{GPX_NS}" '
        'xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v1">'
        f"{content}</gpx>"
    )


def iso(seconds):
    return (T0 + timedelta(seconds=seconds)).isoformat().replace("+00:00", "Z")


@pytest.fixture
def gpx_builder():
    return build_gpx


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def three_point_records():
    return [
        {"lat": "0", "lon": "0", "ele": "10", "time": iso(0), "hr": "120"},
        {"lat": "0", "lon": "0.01", "ele": "12", "time": iso(60), "hr": "130"},
        {"lat": "0", "lon": "0.02", "ele": "11", "time": iso(120), "hr": "141"},
    ]


@pytest.fixture
def three_point_gpx(three_point_records):
    return build_gpx(three_point_records, name="Morning Run")


@pytest.fixture
def untimed_records():
    return [
        {"lat": "45.0", "lon": "7.0", "ele": "100"},
        {"lat": "45.001", "lon": "7.0", "ele": "110"},
        {"lat": "45.002", "lon": "7.0", "ele": "104"},
        {"lat": "45.003", "lon": "7.0", "ele": "96"},
    ]


@pytest.fixture
def make_track(rng):
    """Parse raw point records directly into a Track."""
    def _make(records, name="Test", track_id=None):
        source = RawPointSource(track_points=list(records))
        return parse_point_source(source, name=name, rng=rng, track_id=track_id)
    return _make


@pytest.fixture
def timed_track(make_track, three_point_records):
    return make_track(three_point_records, name="Timed", track_id="track-timed")


@pytest.fixture
def untimed_track(make_track, untimed_records):
    return make_track(untimed_records, name="Untimed", track_id="track-untimed")


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeHandle:
    def __init__(self, callback):
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Collects call_later callbacks; ``run_next`` fires the oldest live one."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def run_next(self):
        handle = self.pending[0]
        self.handles.remove(handle)
        handle.callback()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return FakeScheduler()
