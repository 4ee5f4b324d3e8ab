"""Tests for chart point preparation, downsampling and axis scaling."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from models.records import SensorReading
from services.charts import (
    CHART_SPECS,
    ChartPoint,
    ChartTransformer,
    TimeWindow,
    compute_domain,
    downsample,
    filter_points,
    min_tick_gap,
    y_ticks,
)

BASE = datetime(2024, 3, 5, 14, 7, tzinfo=timezone.utc)


def _reading(minutes: int, **values) -> SensorReading:
    stamp = (BASE + timedelta(minutes=minutes)).isoformat().replace("+00:00", "Z")
    return SensorReading(timestamp=stamp, **values)


def _point(index: int, **values) -> ChartPoint:
    return ChartPoint(
        label=str(index),
        timestamp=f"t{index}",
        date="",
        detail="",
        values=values,
    )


def _spec(key: str):
    return next(spec for spec in CHART_SPECS if spec.key == key)


@pytest.mark.parametrize("window", [TimeWindow.week, TimeWindow.month])
def test_downsample_keeps_every_tenth_point_for_long_windows(window) -> None:
    points = [_point(index) for index in range(100)]

    sampled = downsample(points, window)

    assert [point.label for point in sampled] == [str(index) for index in range(0, 100, 10)]


@pytest.mark.parametrize("window", [TimeWindow.hour, TimeWindow.half_day, TimeWindow.day])
def test_downsample_keeps_all_points_for_short_windows(window) -> None:
    points = [_point(index) for index in range(100)]

    assert downsample(points, window) == points


def test_to_points_sorts_ascending_before_downsampling() -> None:
    readings = [_reading(minutes, temp1=float(minutes)) for minutes in reversed(range(25))]

    points = ChartTransformer().to_points(readings, TimeWindow.week)

    assert [point.value("temp1") for point in points] == [0.0, 10.0, 20.0]


def test_window_hours() -> None:
    assert [window.hours for window in TimeWindow] == [1, 12, 24, 168, 720]
    assert TimeWindow("1m").label == "Last Month"


@pytest.mark.parametrize(
    ("window", "expected"),
    [
        (TimeWindow.hour, "02:07 PM"),
        (TimeWindow.half_day, "02:07 PM"),
        (TimeWindow.day, "Mar 5, 02:07 PM"),
        (TimeWindow.week, "Mar 5"),
        (TimeWindow.month, "Mar 5"),
    ],
)
def test_labels_depend_on_window(window, expected) -> None:
    point = ChartTransformer().to_point(_reading(0, ph=7.0), window)

    assert point.label == expected
    assert point.timestamp == "2024-03-05T14:07:00Z"
    assert point.detail == "Mar 5, 2024, 02:07 PM"
    assert point.date == "3/5/2024"


def test_filter_points_drops_points_without_any_tracked_value() -> None:
    points = [
        _point(0, temp1=31.0, temp2=None),
        _point(1, temp1=None, temp2=None),
        _point(2, temp1=math.nan, temp2=None),
        _point(3, temp1=None, temp2=33.0),
    ]

    visible = filter_points(points, ("temp1", "temp2"))

    assert [point.label for point in visible] == ["0", "3"]


def test_series_break_at_their_own_gaps() -> None:
    readings = [
        _reading(0, temp1=31.0, temp2=32.0),
        _reading(1, temp1=None, temp2=32.5),
        _reading(2, temp1=33.0, temp2=None),
    ]
    transformer = ChartTransformer()
    points = transformer.to_points(readings, TimeWindow.hour)

    chart = transformer.build_chart(_spec("tank_temperature"), points, TimeWindow.hour)

    assert chart.series_values("temp1") == [31.0, None, 33.0]
    assert chart.series_values("temp2") == [32.0, 32.5, None]


def test_fixed_domain_is_never_recomputed() -> None:
    assert compute_domain([500.0, -20.0], TimeWindow.hour, fixed=(0, 80)) == (0.0, 80.0)
    assert compute_domain([], TimeWindow.month, fixed=(0, 80)) == (0.0, 80.0)


def test_fixed_chart_keeps_domain_for_out_of_range_data() -> None:
    transformer = ChartTransformer()
    points = transformer.to_points([_reading(0, temp1=120.0)], TimeWindow.day)

    chart = transformer.build_chart(_spec("tank_temperature"), points, TimeWindow.day)

    assert chart.domain == (0.0, 80.0)


def test_short_window_domain_is_recentred_with_minimum_span() -> None:
    low, high = compute_domain([20.0, 21.0, 22.0], TimeWindow.hour, auto_scale=True)

    assert (low + high) / 2 == pytest.approx(21.0)
    assert high - low >= 2
    assert (low, high) == pytest.approx((19.5, 22.5))


def test_short_window_small_range_uses_fixed_span_of_two() -> None:
    low, high = compute_domain([1013.2, 1013.4], TimeWindow.half_day, auto_scale=True)

    assert (low, high) == pytest.approx((1012.3, 1014.3))


@pytest.mark.parametrize(
    ("window", "factor"),
    [
        (TimeWindow.day, 0.12),
        (TimeWindow.week, 0.20),
        (TimeWindow.month, 0.25),
    ],
)
def test_long_window_padding_factor(window, factor) -> None:
    low, high = compute_domain([10.0, 20.0], window, auto_scale=True)

    assert (low, high) == pytest.approx((10.0 - 10 * factor, 20.0 + 10 * factor))


def test_padding_has_absolute_floor() -> None:
    assert compute_domain([5.0, 5.0], TimeWindow.day) == pytest.approx((4.9, 5.1))


def test_auto_scale_ignores_absent_values() -> None:
    assert compute_domain([None, math.nan], TimeWindow.day) is None


def test_auto_scale_overrides_supplied_domain() -> None:
    low, high = compute_domain([10.0, 20.0], TimeWindow.day, fixed=(0, 100), auto_scale=True)

    assert (low, high) == pytest.approx((8.8, 21.2))


def test_min_tick_gap_grows_with_window_and_point_count() -> None:
    assert min_tick_gap(TimeWindow.hour, 10) == 32
    assert min_tick_gap(TimeWindow.hour, 51) == 60
    assert min_tick_gap(TimeWindow.day, 100) == 40
    assert min_tick_gap(TimeWindow.day, 101) == 80
    assert min_tick_gap(TimeWindow.month, 201) == 100


def test_y_ticks_are_evenly_spaced() -> None:
    assert y_ticks((0.0, 80.0)) == [0.0, 20.0, 40.0, 60.0, 80.0]
    assert y_ticks(None) == []


def test_build_charts_marks_charts_without_data_empty() -> None:
    readings = [_reading(minutes, ph=7.0 + minutes / 100) for minutes in range(5)]

    charts = ChartTransformer().build_charts(readings, TimeWindow.hour)

    by_key = {chart.spec.key: chart for chart in charts}
    assert len(charts) == len(CHART_SPECS)
    assert by_key["ph"].point_count == 5
    assert by_key["ph"].domain == (0.0, 14.0)
    assert by_key["ph"].format_tick(3.5) == "3.50"
    assert by_key["pressure"].empty is True
    assert by_key["pressure"].domain is None


def test_tick_precision_is_coarser_for_long_windows() -> None:
    readings = [_reading(0, bme_pressure=1013.456)]

    week = ChartTransformer().build_charts(readings, TimeWindow.week)
    day = ChartTransformer().build_charts(readings, TimeWindow.day)

    assert week[0].format_tick(1013.456) == "1013"
    assert day[0].format_tick(1013.456) == "1013.5"
