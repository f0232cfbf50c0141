import numpy as np
import pandas as pd
import pytest

from trailplay import metrics, stats, time_series


def frame(records, rng=None):
    df, _ = time_series.extract_point_series(records)
    df = metrics.compute_derived_metrics(df)
    return metrics.fill_missing_speeds(df, rng=rng or np.random.default_rng(0))


def test_heart_rate_summary_without_data():
    summary = stats.summarize_heart_rate(pd.Series([np.nan, np.nan]))
    assert summary == {
        "has_heart_rate_data": False,
        "avg_heart_rate": 0,
        "min_heart_rate": None,
        "max_heart_rate": None,
        "heart_rate_data_points": 0,
    }


def test_heart_rate_average_rounds_half_up():
    summary = stats.summarize_heart_rate(pd.Series([100.0, 101.0]))
    assert summary["avg_heart_rate"] == 101


def test_elevation_summary_of_empty_series():
    summary = stats.summarize_elevation(pd.Series([], dtype=float))
    assert summary["min_elevation"] == 0.0
    assert summary["max_elevation"] == 0.0
    assert summary["elevation_gain"] == 0.0


def test_moving_time_ignores_stationary_legs():
    df = frame([
        {"lat": "0", "lon": "0", "time": "2024-05-01T08:00:00Z"},
        {"lat": "0", "lon": "0.01", "time": "2024-05-01T08:06:00Z"},
        {"lat": "0", "lon": "0.01", "time": "2024-05-01T08:12:00Z"},
    ])
    result = stats.compute_stats(df)

    assert result.total_duration == pytest.approx(0.2)
    assert result.moving_time == pytest.approx(0.1)
    assert result.avg_moving_speed == pytest.approx(result.total_distance / 0.1)
    assert result.max_speed == pytest.approx(result.avg_moving_speed)
    assert result.point_count == 3


def test_average_moving_speed_is_distance_weighted():
    df = frame([
        {"lat": "0", "lon": "0", "time": "2024-05-01T08:00:00Z"},
        {"lat": "0", "lon": "0.01", "time": "2024-05-01T08:06:00Z"},
        {"lat": "0", "lon": "0.03", "time": "2024-05-01T08:09:00Z"},
    ])
    result = stats.compute_stats(df)

    leg_mean = df["measured_speed"].iloc[1:].mean()
    assert result.moving_time == pytest.approx(0.15)
    assert result.avg_moving_speed == pytest.approx(result.total_distance / 0.15)
    assert result.avg_moving_speed < leg_mean


def test_zero_span_times_fall_back_to_estimate():
    df = frame([
        {"lat": "0", "lon": "0", "time": "2024-05-01T08:00:00Z"},
        {"lat": "0", "lon": "0.01", "time": "2024-05-01T08:00:00Z"},
    ])
    result = stats.compute_stats(df)
    assert result.has_time_data is True
    assert result.duration_estimated is True
    assert result.total_duration == pytest.approx(result.total_distance / 5.0)


def test_fill_missing_speeds_keeps_measured_values():
    df = frame([
        {"lat": "0", "lon": "0", "time": "2024-05-01T08:00:00Z"},
        {"lat": "0", "lon": "0.01", "time": "2024-05-01T08:01:00Z"},
    ])
    assert df["speed"].iloc[1] == pytest.approx(df["measured_speed"].iloc[1])
    assert list(df["speed_estimated"]) == [True, False]


def test_interpolate_missing_speeds_between_known_values():
    filled, estimated = metrics.interpolate_missing_speeds(np.array([0.0, 10.0, 0.0, 20.0, 0.0]))
    assert list(filled) == [10.0, 10.0, 15.0, 20.0, 20.0]
    assert list(estimated) == [True, False, True, False, True]


def test_interpolate_requires_a_known_speed():
    with pytest.raises(ValueError):
        metrics.interpolate_missing_speeds(np.zeros(3))
