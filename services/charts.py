"""Chart data preparation: window profiles, downsampling and axis scaling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from models.records import SensorReading, is_number
from services.display import (
    format_day,
    format_day_and_time,
    format_detail,
    format_time_of_day,
)

Domain = Tuple[float, float]

MIN_PADDING = 0.1
Y_TICK_COUNT = 5


class TimeWindow(str, Enum):
    """Relative time spans selectable on the charts view."""

    hour = "1h"
    half_day = "12h"
    day = "1d"
    week = "1w"
    month = "1m"

    @property
    def profile(self) -> "WindowProfile":
        return WINDOW_PROFILES[self]

    @property
    def hours(self) -> int:
        return self.profile.hours

    @property
    def label(self) -> str:
        return self.profile.label


@dataclass(frozen=True)
class WindowProfile:
    label: str
    hours: int
    padding: float
    # Keep every ``stride``-th point by position; 1 keeps all of them.
    stride: int
    y_decimals: int
    recenter: bool
    format_label: Callable[[datetime], str]
    # (point count above which the wider gap applies, narrow gap, wide gap)
    tick_gaps: Tuple[int, int, int]


WINDOW_PROFILES: Dict[TimeWindow, WindowProfile] = {
    TimeWindow.hour: WindowProfile(
        label="Last Hour",
        hours=1,
        padding=0.05,
        stride=1,
        y_decimals=2,
        recenter=True,
        format_label=format_time_of_day,
        tick_gaps=(50, 32, 60),
    ),
    TimeWindow.half_day: WindowProfile(
        label="Last 12 Hours",
        hours=12,
        padding=0.08,
        stride=1,
        y_decimals=2,
        recenter=True,
        format_label=format_time_of_day,
        tick_gaps=(50, 32, 60),
    ),
    TimeWindow.day: WindowProfile(
        label="Last Day",
        hours=24,
        padding=0.12,
        stride=1,
        y_decimals=1,
        recenter=False,
        format_label=format_day_and_time,
        tick_gaps=(100, 40, 80),
    ),
    TimeWindow.week: WindowProfile(
        label="Last Week",
        hours=24 * 7,
        padding=0.20,
        stride=10,
        y_decimals=0,
        recenter=False,
        format_label=format_day,
        tick_gaps=(200, 50, 100),
    ),
    TimeWindow.month: WindowProfile(
        label="Last Month",
        hours=24 * 30,
        padding=0.25,
        stride=10,
        y_decimals=0,
        recenter=False,
        format_label=format_day,
        tick_gaps=(200, 50, 100),
    ),
}


@dataclass(frozen=True)
class AlarmZone:
    """Coloured band ``[min, max)`` drawn behind a chart's lines."""

    min: float
    max: float
    label: str
    color: str


TANK_TEMPERATURE_ZONES: Tuple[AlarmZone, ...] = (
    AlarmZone(0, 30, "Too cold (<30°C)", "#3b82f6"),
    AlarmZone(30, 40, "Optimal (30-40°C)", "#22c55e"),
    AlarmZone(40, 80, "Too hot (>40°C)", "#ef4444"),
)

PH_ZONES: Tuple[AlarmZone, ...] = (
    AlarmZone(0, 6, "Too acidic (<6)", "#ef4444"),
    AlarmZone(6, 8, "Optimal (6-8)", "#22c55e"),
    AlarmZone(8, 14, "Too alkaline (>8)", "#ef4444"),
)


@dataclass(frozen=True)
class SeriesSpec:
    field: str
    label: str
    color: str


@dataclass(frozen=True)
class ChartSpec:
    key: str
    title: str
    description: str
    series: Tuple[SeriesSpec, ...]
    domain: Optional[Domain] = None
    auto_scale: bool = False
    alarm_zones: Tuple[AlarmZone, ...] = ()

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(series.field for series in self.series)


CHART_SPECS: Tuple[ChartSpec, ...] = (
    ChartSpec(
        key="tank_temperature",
        title="Tank Temperature",
        description="Temperature sensors in the biodigester tank",
        series=(
            SeriesSpec("temp1", "Temperature Sensor 1", "#ef4444"),
            SeriesSpec("temp2", "Temperature Sensor 2", "#f97316"),
        ),
        domain=(0, 80),
        alarm_zones=TANK_TEMPERATURE_ZONES,
    ),
    ChartSpec(
        key="ph",
        title="pH Value",
        description="Acidity level in the biodigester",
        series=(SeriesSpec("ph", "pH Value", "#8b5cf6"),),
        domain=(0, 14),
        alarm_zones=PH_ZONES,
    ),
    ChartSpec(
        key="gas_temperature",
        title="Gas Temperature",
        description="Temperature of the gas output",
        series=(SeriesSpec("bme_temperature", "Gas Temperature", "#06b6d4"),),
    ),
    ChartSpec(
        key="humidity",
        title="Humidity",
        description="Humidity level in the gas chamber",
        series=(SeriesSpec("bme_humidity", "Humidity (%)", "#10b981"),),
        domain=(0, 100),
    ),
    ChartSpec(
        key="pressure",
        title="Pressure",
        description="Gas pressure in the biodigester",
        series=(SeriesSpec("bme_pressure", "Pressure (hPa)", "#f59e0b"),),
        auto_scale=True,
    ),
    ChartSpec(
        key="gas_resistance",
        title="Gas Resistance",
        description="Gas sensor resistance value",
        series=(SeriesSpec("bme_gas_resistance", "Gas Resistance (Ω)", "#84cc16"),),
        auto_scale=True,
    ),
    ChartSpec(
        key="methane_ppm",
        title="Methane Concentration (PPM)",
        description="Methane concentration in parts per million",
        series=(SeriesSpec("methane_ppm", "Methane (PPM)", "#ec4899"),),
        auto_scale=True,
    ),
    ChartSpec(
        key="methane_percent",
        title="Methane Percentage",
        description="Methane concentration as percentage",
        series=(SeriesSpec("methane_percent", "Methane (%)", "#8b5cf6"),),
        domain=(0, 100),
    ),
    ChartSpec(
        key="methane_temperature",
        title="Methane Sensor Temperature",
        description="Temperature of the methane sensor",
        series=(SeriesSpec("methane_temperature", "Sensor Temperature (°C)", "#06b6d4"),),
    ),
)


@dataclass(frozen=True)
class ChartPoint:
    """A reading prepared for plotting on a time axis."""

    label: str
    timestamp: str
    date: str
    detail: str
    values: Mapping[str, Optional[float]]

    def value(self, field_name: str) -> Optional[float]:
        value = self.values.get(field_name)
        return value if is_number(value) else None


@dataclass
class ChartData:
    spec: ChartSpec
    points: List[ChartPoint]
    domain: Optional[Domain]
    y_ticks: List[float] = field(default_factory=list)
    y_decimals: int = 2
    min_tick_gap: int = 32

    @property
    def empty(self) -> bool:
        return not self.points

    @property
    def point_count(self) -> int:
        return len(self.points)

    def series_values(self, field_name: str) -> List[Optional[float]]:
        return [point.value(field_name) for point in self.points]

    def format_tick(self, value: float) -> str:
        return f"{value:.{self.y_decimals}f}"


def downsample(points: Sequence[ChartPoint], window: TimeWindow) -> List[ChartPoint]:
    """Fixed-stride decimation by position for the long windows."""
    stride = window.profile.stride
    if stride <= 1:
        return list(points)
    return [point for index, point in enumerate(points) if index % stride == 0]


def is_plottable(point: ChartPoint, fields: Iterable[str]) -> bool:
    return any(point.value(name) is not None for name in fields)


def filter_points(points: Iterable[ChartPoint], fields: Sequence[str]) -> List[ChartPoint]:
    return [point for point in points if is_plottable(point, fields)]


def compute_domain(
    values: Iterable[Optional[float]],
    window: TimeWindow,
    fixed: Optional[Domain] = None,
    auto_scale: bool = False,
) -> Optional[Domain]:
    """Vertical axis bounds for a chart.

    A fixed domain is returned unchanged unless ``auto_scale`` is set. Otherwise
    the bounds follow the data, padded by the window's padding factor (at least
    ``MIN_PADDING``). Short windows are re-centred on the data midpoint with a
    minimum span so small fluctuations stay visible.
    """
    if fixed is not None and not auto_scale:
        return (float(fixed[0]), float(fixed[1]))

    numbers = [value for value in values if is_number(value)]
    if not numbers:
        return fixed
    low, high = min(numbers), max(numbers)
    spread = high - low

    profile = window.profile
    padding = max(spread * profile.padding, MIN_PADDING)
    domain = (low - padding, high + padding)

    if profile.recenter:
        span = 2.0 if spread < 1 else spread * 1.5
        center = (low + high) / 2
        domain = (center - span / 2, center + span / 2)
    return domain


def min_tick_gap(window: TimeWindow, point_count: int) -> int:
    threshold, narrow, wide = window.profile.tick_gaps
    return wide if point_count > threshold else narrow


def y_ticks(domain: Optional[Domain], count: int = Y_TICK_COUNT) -> List[float]:
    if domain is None or count < 2:
        return []
    low, high = domain
    step = (high - low) / (count - 1)
    return [low + step * index for index in range(count)]


class ChartTransformer:
    """Turns raw readings for one window into renderable charts."""

    def __init__(self, zone: tzinfo = timezone.utc, specs: Sequence[ChartSpec] = CHART_SPECS) -> None:
        self.zone = zone
        self.specs = tuple(specs)

    def to_point(self, reading: SensorReading, window: TimeWindow) -> ChartPoint:
        moment = reading.observed_at.astimezone(self.zone)
        tracked = {name for spec in self.specs for name in spec.fields}
        return ChartPoint(
            label=window.profile.format_label(moment),
            timestamp=reading.timestamp,
            date=f"{moment.month}/{moment.day}/{moment.year}",
            detail=format_detail(moment),
            values={name: reading.value(name) for name in sorted(tracked)},
        )

    def to_points(self, readings: Iterable[SensorReading], window: TimeWindow) -> List[ChartPoint]:
        ordered = sorted(readings, key=lambda reading: reading.observed_at)
        return downsample([self.to_point(reading, window) for reading in ordered], window)

    def build_chart(self, spec: ChartSpec, points: Sequence[ChartPoint], window: TimeWindow) -> ChartData:
        visible = filter_points(points, spec.fields)
        values = [point.value(name) for point in visible for name in spec.fields]
        domain = compute_domain(values, window, fixed=spec.domain, auto_scale=spec.auto_scale)
        return ChartData(
            spec=spec,
            points=visible,
            domain=domain if visible else None,
            y_ticks=y_ticks(domain) if visible else [],
            y_decimals=window.profile.y_decimals,
            min_tick_gap=min_tick_gap(window, len(visible)),
        )

    def build_charts(self, readings: Iterable[SensorReading], window: TimeWindow) -> List[ChartData]:
        points = self.to_points(readings, window)
        return [self.build_chart(spec, points, window) for spec in self.specs]
