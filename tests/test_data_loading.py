import pytest

from trailplay.data_loading import decode_gpx, list_datasets, local_name
from trailplay.errors import InvalidFormatError


def test_local_name_strips_namespace_and_prefix():
    assert local_name("{http://www.topografix.com/GPX/1/1}trkpt") == "trkpt"
    assert local_name("gpxtpx:hr") == "hr"


def test_decode_reads_points_and_extension_heart_rate(gpx_builder, three_point_records):
    source = decode_gpx(gpx_builder(three_point_records, name="Loop"))

    assert source.name == "Loop"
    assert len(source.track_points) == 3
    assert source.route_points == []
    assert source.track_points[2] == {
        "lat": "0", "lon": "0.02", "ele": "11",
        "time": three_point_records[2]["time"], "hr": "141",
    }


def test_decode_without_namespace_and_direct_heart_rate():
    content = (
        "<gpx><rte><rtept lat='1.5' lon='2.5'><heartrate>99</heartrate></rtept></rte>"
        "<wpt lat='3' lon='4'/></gpx>"
    )
    source = decode_gpx(content)
    assert source.track_points == []
    assert source.route_points[0]["hr"] == "99"
    assert source.waypoints[0]["lat"] == "3"
    assert source.waypoints[0]["ele"] is None


def test_decode_falls_back_to_metadata_name():
    content = "<gpx><metadata><name>Meta</name></metadata><wpt lat='1' lon='1'/></gpx>"
    assert decode_gpx(content).name == "Meta"


def test_decode_rejects_malformed_xml():
    with pytest.raises(InvalidFormatError) as excinfo:
        decode_gpx("<gpx><trk>")
    assert excinfo.value.code == "INVALID_FORMAT"


def test_list_datasets(tmp_path):
    (tmp_path / "evening_ride.gpx").write_text("<gpx/>")
    (tmp_path / "notes.txt").write_text("ignored")
    (tmp_path / "a_walk.gpx").write_text("<gpx/>")

    datasets = list_datasets(tmp_path)
    assert [d["filename"] for d in datasets] == ["a_walk.gpx", "evening_ride.gpx"]
    assert datasets[1]["display_name"] == "Evening Ride"


def test_list_datasets_missing_directory(tmp_path):
    assert list_datasets(tmp_path / "missing") == []
