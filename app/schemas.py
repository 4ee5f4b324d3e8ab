"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from services.charts import TimeWindow
from services.classifier import AlarmStatus


class MetricTile(BaseModel):
    """One labelled value on the current-reading dashboard."""

    label: str
    field: str
    value: Optional[float] = None
    display: str
    status: Optional[AlarmStatus] = Field(
        default=None, description="Alarm status for classified metrics only."
    )


class LatestReadingResponse(BaseModel):
    """Latest reading with formatted values and alarm evaluation."""

    loading: bool
    has_data: bool
    timestamp: str
    reading: Optional[Dict[str, Any]] = None
    tiles: List[MetricTile] = Field(default_factory=list)
    alarms: Dict[str, AlarmStatus] = Field(default_factory=dict)
    critical: bool = False
    critical_messages: List[str] = Field(default_factory=list)
    methane_raw_display: str
    methane_faults: List[str] = Field(default_factory=list)


class ChartPointOut(BaseModel):
    label: str
    timestamp: str
    date: str
    detail: str
    values: Dict[str, Optional[float]]


class ChartSeriesOut(BaseModel):
    field: str
    label: str
    color: str


class AlarmZoneOut(BaseModel):
    min: float
    max: float
    label: str
    color: str


class ChartOut(BaseModel):
    key: str
    title: str
    description: str
    series: List[ChartSeriesOut]
    alarm_zones: List[AlarmZoneOut] = Field(default_factory=list)
    points: List[ChartPointOut] = Field(default_factory=list)
    point_count: int = Field(..., ge=0)
    domain: Optional[List[float]] = None
    y_ticks: List[str] = Field(default_factory=list)
    min_tick_gap: int
    empty: bool


class ChartsResponse(BaseModel):
    """Charts for the selected window."""

    window: TimeWindow
    label: str
    data_window: Optional[TimeWindow] = None
    loading: bool = False
    failed: bool = False
    has_data: bool
    charts: List[ChartOut] = Field(default_factory=list)


class InsertNotification(BaseModel):
    """Database webhook payload for a row change on the sensor table."""

    type: str = Field(..., description="Change type, e.g. INSERT, UPDATE or DELETE.")
    table: str
    db_schema: Optional[str] = Field(default=None, alias="schema")
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None


class NotificationAck(BaseModel):
    status: str
    delivered: int = 0
