"""Projects chart data onto SVG coordinates for the HTML charts view."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from services.charts import ChartData

WIDTH = 720
HEIGHT = 260
MARGIN_LEFT = 48
MARGIN_RIGHT = 8
MARGIN_TOP = 8
MARGIN_BOTTOM = 28


@dataclass
class SvgSeries:
    label: str
    color: str
    # One polyline per unbroken run of values.
    segments: List[str] = field(default_factory=list)


@dataclass
class SvgBand:
    y: float
    height: float
    color: str
    label: str


@dataclass
class SvgTick:
    position: float
    text: str


@dataclass
class SvgChart:
    width: int
    height: int
    plot_left: int
    plot_right: int
    plot_top: int
    plot_bottom: int
    series: List[SvgSeries] = field(default_factory=list)
    bands: List[SvgBand] = field(default_factory=list)
    y_ticks: List[SvgTick] = field(default_factory=list)
    x_ticks: List[SvgTick] = field(default_factory=list)


def _x_positions(count: int, left: float, right: float) -> List[float]:
    if count == 1:
        return [(left + right) / 2]
    step = (right - left) / (count - 1)
    return [left + step * index for index in range(count)]


def x_tick_indices(count: int, plot_width: float, min_gap: int) -> List[int]:
    """Indices of points whose labels are at least ``min_gap`` pixels apart."""
    if count <= 0:
        return []
    if count == 1:
        return [0]
    spacing = plot_width / (count - 1)
    every = max(1, math.ceil(min_gap / spacing))
    return list(range(0, count, every))


def project(chart: ChartData, width: int = WIDTH, height: int = HEIGHT) -> Optional[SvgChart]:
    if chart.empty or chart.domain is None:
        return None

    left, right = MARGIN_LEFT, width - MARGIN_RIGHT
    top, bottom = MARGIN_TOP, height - MARGIN_BOTTOM
    low, high = chart.domain
    span = (high - low) or 1.0

    def to_y(value: float) -> float:
        clamped = min(max(value, low), high)
        return bottom - (clamped - low) / span * (bottom - top)

    svg = SvgChart(
        width=width,
        height=height,
        plot_left=left,
        plot_right=right,
        plot_top=top,
        plot_bottom=bottom,
    )

    for zone in chart.spec.alarm_zones:
        upper, lower = to_y(zone.max), to_y(zone.min)
        svg.bands.append(SvgBand(y=upper, height=lower - upper, color=zone.color, label=zone.label))

    xs = _x_positions(chart.point_count, left, right)
    for spec in chart.spec.series:
        series = SvgSeries(label=spec.label, color=spec.color)
        run: List[Tuple[float, float]] = []
        for x, value in zip(xs, chart.series_values(spec.field)):
            if value is None:
                if run:
                    series.segments.append(_polyline(run))
                run = []
                continue
            run.append((x, to_y(value)))
        if run:
            series.segments.append(_polyline(run))
        svg.series.append(series)

    svg.y_ticks = [SvgTick(position=to_y(tick), text=chart.format_tick(tick)) for tick in chart.y_ticks]
    svg.x_ticks = [
        SvgTick(position=xs[index], text=chart.points[index].label)
        for index in x_tick_indices(chart.point_count, right - left, chart.min_tick_gap)
    ]
    return svg


def _polyline(run: List[Tuple[float, float]]) -> str:
    return " ".join(f"{x:.1f},{y:.1f}" for x, y in run)
