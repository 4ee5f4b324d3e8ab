"""Alarm classification of tank temperature and pH readings."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from models.records import SensorReading


class AlarmStatus(str, Enum):
    """Classification of a single metric value."""

    unknown = "unknown"
    safe = "safe"
    critical = "critical"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    AlarmStatus.unknown: "Unknown",
    AlarmStatus.safe: "Optimal",
    AlarmStatus.critical: "Critical",
}


@dataclass(frozen=True)
class AlarmRange:
    """Inclusive ``[min, max]`` band in which a metric is considered safe."""

    min: float
    max: float

    def describe(self) -> str:
        return f"{self.min:g}-{self.max:g}"


@dataclass(frozen=True)
class TrackedMetric:
    field: str
    range_name: str
    label: str
    unit: str = ""


TRACKED_METRICS: Tuple[TrackedMetric, ...] = (
    TrackedMetric(field="temp1", range_name="tank_temperature", label="Tank temperature 1", unit="°C"),
    TrackedMetric(field="temp2", range_name="tank_temperature", label="Tank temperature 2", unit="°C"),
    TrackedMetric(field="ph", range_name="ph", label="pH value"),
)


def classify(value: Optional[float], alarm_range: AlarmRange) -> AlarmStatus:
    """Classify ``value`` against ``alarm_range``; absent or NaN is ``unknown``."""
    if value is None or isinstance(value, bool):
        return AlarmStatus.unknown
    if isinstance(value, float) and math.isnan(value):
        return AlarmStatus.unknown
    if alarm_range.min <= value <= alarm_range.max:
        return AlarmStatus.safe
    return AlarmStatus.critical


@dataclass
class AlarmEvaluation:
    """Per-metric statuses for one reading and the resulting banner lines."""

    statuses: Dict[str, AlarmStatus] = field(default_factory=dict)
    messages: List[str] = field(default_factory=list)

    @property
    def critical(self) -> bool:
        return any(status is AlarmStatus.critical for status in self.statuses.values())

    def status_for(self, field_name: str) -> Optional[AlarmStatus]:
        return self.statuses.get(field_name)


class AlarmClassifier:
    """Evaluates the tracked metrics of a reading against a range table."""

    def __init__(
        self,
        ranges: Mapping[str, AlarmRange],
        metrics: Tuple[TrackedMetric, ...] = TRACKED_METRICS,
    ) -> None:
        missing = sorted({metric.range_name for metric in metrics} - set(ranges))
        if missing:
            raise ValueError(f"Missing alarm ranges: {', '.join(missing)}")
        self.ranges = dict(ranges)
        self.metrics = metrics

    @classmethod
    def from_bounds(cls, bounds: Mapping[str, Tuple[float, float]]) -> "AlarmClassifier":
        return cls({name: AlarmRange(min=low, max=high) for name, (low, high) in bounds.items()})

    def evaluate(self, reading: Optional[SensorReading]) -> AlarmEvaluation:
        evaluation = AlarmEvaluation()
        for metric in self.metrics:
            alarm_range = self.ranges[metric.range_name]
            value = reading.value(metric.field) if reading is not None else None
            status = classify(value, alarm_range)
            evaluation.statuses[metric.field] = status
            if status is AlarmStatus.critical:
                evaluation.messages.append(
                    f"{metric.label} outside optimal range ({alarm_range.describe()}{metric.unit})"
                )
        return evaluation
