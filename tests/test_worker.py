import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from trailplay import worker
from trailplay.errors import InvalidFormatError, NoTrackPointsError, ParseError


@pytest.fixture
def background():
    with worker.BackgroundParser(kind="thread", max_workers=1) as parser:
        yield parser


def test_handle_message_success(three_point_gpx):
    response = worker.handle_message(worker.parse_request(three_point_gpx, seed=1, track_id="t1"))
    assert response["type"] == worker.PARSE_SUCCESS
    payload = response["payload"]
    assert payload["id"] == "t1"
    assert payload["name"] == "Morning Run"
    assert len(payload["points"]) == 3
    assert payload["stats"]["start_time"].startswith("2024-05-01T08:00:00")


def test_handle_message_parse_error():
    response = worker.handle_message(worker.parse_request("<gpx>"))
    assert response == {
        "type": worker.PARSE_ERROR,
        "payload": {"code": "INVALID_FORMAT", "message": "Invalid GPX file format"},
    }


def test_handle_message_rejects_unknown_type():
    with pytest.raises(ValueError):
        worker.handle_message({"type": "PING"})


def test_unwrap_response_rebuilds_error_class():
    response = {"type": worker.PARSE_ERROR, "payload": {"code": "NO_TRACK_POINTS", "message": "No track points found"}}
    with pytest.raises(NoTrackPointsError, match="No track points found"):
        worker.unwrap_response(response)


def test_parse_round_trips_track(background, three_point_gpx, timed_track):
    track = background.parse(three_point_gpx, seed=3, timeout=10)
    assert track.stats == timed_track.stats
    assert track.points == timed_track.points
    assert track.activity_segments == timed_track.activity_segments
    assert track.bounds == timed_track.bounds


def test_parse_untimed_is_reproducible_with_seed(background, gpx_builder, untimed_records):
    content = gpx_builder(untimed_records)
    a = background.parse(content, seed=11)
    b = background.parse(content, seed=11)
    assert [p.speed for p in a.points] == [p.speed for p in b.points]


def test_parse_error_crosses_boundary(background):
    with pytest.raises(InvalidFormatError) as excinfo:
        background.parse("not xml")
    assert isinstance(excinfo.value, ParseError)


def test_parse_async(background, three_point_gpx):
    track = asyncio.run(background.parse_async(three_point_gpx, name="upload.gpx"))
    assert track.name == "Morning Run"


def test_external_executor_is_not_shut_down(three_point_gpx):
    executor = ThreadPoolExecutor(max_workers=1)
    try:
        with worker.BackgroundParser(executor=executor) as parser:
            parser.parse(three_point_gpx)
        assert executor.submit(lambda: 1).result() == 1
    finally:
        executor.shutdown()


def test_unknown_executor_kind():
    with pytest.raises(ValueError):
        worker.make_executor("gpu")
