"""Formatting helpers shared by the JSON API and the HTML views."""

from __future__ import annotations

import math
from datetime import datetime, tzinfo
from typing import Any, Dict, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from models.records import SensorReading, parse_timestamp

PLACEHOLDER = "–"
NO_FAULTS = "No errors"

# (label, field) pairs in dashboard order.
DASHBOARD_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("pH Value", "ph"),
    ("pH Voltage [mV]", "ph_voltage"),
    ("Temp. 1 [°C]", "temp1"),
    ("Temp. 2 [°C]", "temp2"),
    ("BME Temp. [°C]", "bme_temperature"),
    ("BME Humidity [%]", "bme_humidity"),
    ("BME Pressure [hPa]", "bme_pressure"),
    ("BME Gas Resistance [kΩ]", "bme_gas_resistance"),
    ("Methane [ppm]", "methane_ppm"),
    ("Methane [%]", "methane_percent"),
    ("Methane Temp. [°C]", "methane_temperature"),
)


def resolve_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def format_value(value: Any) -> str:
    """Two-decimal numbers, strings unchanged, placeholder for absent or NaN."""
    if value is None or isinstance(value, bool):
        return PLACEHOLDER
    if isinstance(value, (int, float)):
        if math.isnan(value):
            return PLACEHOLDER
        return f"{value:.2f}"
    return str(value)


def format_time_of_day(moment: datetime) -> str:
    return moment.strftime("%I:%M %p")


def _month_day(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}"


def localize(timestamp: str, zone: tzinfo) -> datetime:
    return parse_timestamp(timestamp).astimezone(zone)


def format_timestamp(timestamp: Optional[str], zone: tzinfo) -> str:
    """Full date and time with seconds, e.g. ``Oct 16, 2026, 08:05:03 PM``."""
    if not timestamp:
        return PLACEHOLDER
    try:
        moment = localize(timestamp, zone)
    except ValueError:
        return PLACEHOLDER
    return f"{_month_day(moment)}, {moment.year}, {moment:%I:%M:%S %p}"


def format_day_and_time(moment: datetime) -> str:
    return f"{_month_day(moment)}, {format_time_of_day(moment)}"


def format_day(moment: datetime) -> str:
    return _month_day(moment)


def format_detail(moment: datetime) -> str:
    """Hover label for chart points, always with date and time."""
    return f"{_month_day(moment)}, {moment.year}, {format_time_of_day(moment)}"


def format_sequence(values: Optional[Sequence[str]]) -> str:
    if not values:
        return PLACEHOLDER
    return ", ".join(values)


def fault_lines(values: Optional[Sequence[str]]) -> list[str]:
    """Fault messages in source order; empty when there are none to show."""
    return list(values) if values else []


def reading_payload(reading: SensorReading) -> Dict[str, Any]:
    """Row mapping of ``reading`` with NaN replaced by ``None`` for JSON output."""
    row = reading.to_row()
    for key, value in row.items():
        if isinstance(value, float) and math.isnan(value):
            row[key] = None
    return row
