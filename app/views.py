"""Builds API/view models from feed and history state."""

from __future__ import annotations

from datetime import tzinfo
from typing import List

from app.schemas import (
    AlarmZoneOut,
    ChartOut,
    ChartPointOut,
    ChartSeriesOut,
    ChartsResponse,
    LatestReadingResponse,
    MetricTile,
)
from services.charts import ChartData, ChartTransformer
from services.classifier import AlarmClassifier
from services.display import (
    DASHBOARD_FIELDS,
    fault_lines,
    format_sequence,
    format_timestamp,
    format_value,
    reading_payload,
)
from services.feed import FeedSnapshot
from services.history import HistorySnapshot


def build_latest_response(
    snapshot: FeedSnapshot,
    classifier: AlarmClassifier,
    zone: tzinfo,
) -> LatestReadingResponse:
    reading = snapshot.reading
    evaluation = classifier.evaluate(reading)

    tiles: List[MetricTile] = []
    for label, field_name in DASHBOARD_FIELDS:
        value = reading.value(field_name) if reading is not None else None
        tiles.append(
            MetricTile(
                label=label,
                field=field_name,
                value=value,
                display=format_value(value),
                status=evaluation.status_for(field_name),
            )
        )

    return LatestReadingResponse(
        loading=snapshot.loading and reading is None,
        has_data=reading is not None,
        timestamp=format_timestamp(reading.timestamp if reading else None, zone),
        reading=reading_payload(reading) if reading is not None else None,
        tiles=tiles,
        alarms=dict(evaluation.statuses),
        critical=evaluation.critical,
        critical_messages=list(evaluation.messages),
        methane_raw_display=format_sequence(reading.methan_raw if reading else None),
        methane_faults=fault_lines(reading.methane_faults if reading else None),
    )


def _chart_out(chart: ChartData) -> ChartOut:
    spec = chart.spec
    return ChartOut(
        key=spec.key,
        title=spec.title,
        description=spec.description,
        series=[
            ChartSeriesOut(field=series.field, label=series.label, color=series.color)
            for series in spec.series
        ],
        alarm_zones=[
            AlarmZoneOut(min=zone.min, max=zone.max, label=zone.label, color=zone.color)
            for zone in spec.alarm_zones
        ],
        points=[
            ChartPointOut(
                label=point.label,
                timestamp=point.timestamp,
                date=point.date,
                detail=point.detail,
                values={name: point.value(name) for name in spec.fields},
            )
            for point in chart.points
        ],
        point_count=chart.point_count,
        domain=list(chart.domain) if chart.domain is not None else None,
        y_ticks=[chart.format_tick(tick) for tick in chart.y_ticks],
        min_tick_gap=chart.min_tick_gap,
        empty=chart.empty,
    )


def build_charts(snapshot: HistorySnapshot, transformer: ChartTransformer) -> List[ChartData]:
    return transformer.build_charts(snapshot.readings, snapshot.window)


def build_charts_response(
    snapshot: HistorySnapshot,
    charts: List[ChartData],
) -> ChartsResponse:
    return ChartsResponse(
        window=snapshot.window,
        label=snapshot.window.label,
        data_window=snapshot.data_window,
        loading=snapshot.loading,
        failed=snapshot.failed,
        has_data=bool(snapshot.readings),
        charts=[_chart_out(chart) for chart in charts],
    )
