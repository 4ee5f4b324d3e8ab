from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.plotting import project, x_tick_indices
from models.records import SensorReading
from services.charts import ChartTransformer, TimeWindow

BASE = datetime(2024, 3, 5, 14, 0, tzinfo=timezone.utc)


def _charts(*rows):
    readings = [
        SensorReading(timestamp=(BASE + timedelta(minutes=index)).isoformat(), **values)
        for index, values in enumerate(rows)
    ]
    charts = ChartTransformer().build_charts(readings, TimeWindow.hour)
    return {chart.spec.key: chart for chart in charts}


@pytest.mark.parametrize(
    ("count", "width", "gap", "expected"),
    [
        (0, 664, 50, []),
        (1, 664, 50, [0]),
        (3, 664, 32, [0, 1, 2]),
        (10, 90, 50, [0, 5]),
    ],
)
def test_x_tick_indices_respect_min_gap(count, width, gap, expected) -> None:
    assert x_tick_indices(count, width, gap) == expected


def test_missing_values_split_series_into_segments() -> None:
    charts = _charts(
        {"temp1": 35.0, "temp2": 33.0},
        {"temp2": 33.0},
        {"temp1": 36.0, "temp2": 33.0},
        {"temp1": 37.0, "temp2": 33.0},
    )

    svg = project(charts["tank_temperature"])

    assert svg is not None
    first, second = svg.series
    assert first.label == "Temperature Sensor 1"
    assert len(first.segments) == 2
    assert len(first.segments[1].split()) == 2
    assert len(second.segments) == 1
    assert len(second.segments[0].split()) == 4


def test_alarm_zones_project_to_bands() -> None:
    charts = _charts({"temp1": 35.0})

    svg = project(charts["tank_temperature"])

    assert svg is not None
    bands = {band.label: band for band in svg.bands}
    optimal = bands["Optimal (30-40°C)"]
    assert optimal.y == pytest.approx(120.0)
    assert optimal.height == pytest.approx(28.0)
    assert bands["Too hot (>40°C)"].y == pytest.approx(8.0)


def test_single_point_is_centred() -> None:
    charts = _charts({"ph": 7.0})

    svg = project(charts["ph"])

    assert svg is not None
    assert svg.series[0].segments == ["380.0,120.0"]
    assert [tick.text for tick in svg.x_ticks] == [charts["ph"].points[0].label]


def test_empty_chart_is_not_projected() -> None:
    charts = _charts({"ph": 7.0})

    assert project(charts["pressure"]) is None
