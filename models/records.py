"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

NUMERIC_FIELDS: Tuple[str, ...] = (
    "ph",
    "ph_voltage",
    "temp1",
    "temp2",
    "bme_temperature",
    "bme_humidity",
    "bme_pressure",
    "bme_gas_resistance",
    "methane_ppm",
    "methane_percent",
    "methane_temperature",
)

SEQUENCE_FIELDS: Tuple[str, ...] = ("methan_raw", "methane_faults")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def is_number(value: Any) -> bool:
    """True for real numbers that can be plotted or classified."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _coerce_sequence(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return None


@dataclass(frozen=True, slots=True)
class SensorReading:
    """One timestamped snapshot of all biodigester sensor channels.

    Every channel is optional. ``None`` means the channel was not reported and
    is kept distinct from ``0.0`` and from an empty sequence.
    """

    timestamp: str
    ph: Optional[float] = None
    ph_voltage: Optional[float] = None
    temp1: Optional[float] = None
    temp2: Optional[float] = None
    bme_temperature: Optional[float] = None
    bme_humidity: Optional[float] = None
    bme_pressure: Optional[float] = None
    bme_gas_resistance: Optional[float] = None
    methan_raw: Optional[Tuple[str, ...]] = None
    methane_ppm: Optional[float] = None
    methane_percent: Optional[float] = None
    methane_temperature: Optional[float] = None
    methane_faults: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SensorReading":
        """Build a reading from a store row or a push payload."""
        raw_timestamp = row.get("timestamp")
        if not isinstance(raw_timestamp, str) or not raw_timestamp.strip():
            raise ValueError("missing timestamp")
        # Validates the format; the original string stays the ordering key.
        parse_timestamp(raw_timestamp)

        numbers = {name: _coerce_number(row.get(name)) for name in NUMERIC_FIELDS}
        sequences = {name: _coerce_sequence(row.get(name)) for name in SEQUENCE_FIELDS}
        return cls(timestamp=raw_timestamp.strip(), **numbers, **sequences)

    @property
    def observed_at(self) -> datetime:
        return parse_timestamp(self.timestamp)

    def value(self, field_name: str) -> Optional[float]:
        """Return a numeric channel, with NaN reported as absent."""
        if field_name not in NUMERIC_FIELDS:
            raise KeyError(field_name)
        value = getattr(self, field_name)
        return value if is_number(value) else None

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        for name in SEQUENCE_FIELDS:
            if row[name] is not None:
                row[name] = list(row[name])
        return row
