"""HTTP route definitions for the service."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from app.dependencies import (
    get_app_settings,
    get_changes,
    get_classifier,
    get_feed,
    get_history,
    get_table,
    get_transformer,
    resolve_window,
)
from app.schemas import (
    ChartsResponse,
    InsertNotification,
    LatestReadingResponse,
    NotificationAck,
)
from app.views import build_charts, build_charts_response, build_latest_response
from datastore.changes import ChangeFeed
from datastore.sensor_table import InMemorySensorTable, SensorTable
from models.records import SensorReading
from services.charts import ChartTransformer, TimeWindow
from services.classifier import AlarmClassifier
from services.display import resolve_timezone
from services.feed import LiveReadingFeed
from services.history import HistoryService
from settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/api/readings/latest",
    response_model=LatestReadingResponse,
    summary="Most recent sensor reading with alarm classification.",
)
async def latest_reading(
    feed: LiveReadingFeed = Depends(get_feed),
    classifier: AlarmClassifier = Depends(get_classifier),
    settings: Settings = Depends(get_app_settings),
) -> LatestReadingResponse:
    return build_latest_response(
        feed.snapshot(),
        classifier,
        resolve_timezone(settings.display_timezone),
    )


@router.get(
    "/api/charts",
    response_model=ChartsResponse,
    summary="Chart series for a historical window.",
)
def charts(
    window: Optional[TimeWindow] = Query(default=None, description="One of 1h, 12h, 1d, 1w, 1m."),
    history: HistoryService = Depends(get_history),
    transformer: ChartTransformer = Depends(get_transformer),
    settings: Settings = Depends(get_app_settings),
) -> ChartsResponse:
    selected = resolve_window(window, settings)
    snapshot = history.show(selected, timeout=settings.store_timeout * 2)
    return build_charts_response(snapshot, build_charts(snapshot, transformer))


@router.post(
    "/hooks/sensor-data",
    response_model=NotificationAck,
    summary="Receive insert notifications from the database.",
)
async def sensor_data_hook(
    notification: InsertNotification,
    x_webhook_secret: Optional[str] = Header(default=None),
    changes: ChangeFeed = Depends(get_changes),
    table: SensorTable = Depends(get_table),
    settings: Settings = Depends(get_app_settings),
) -> NotificationAck:
    if settings.webhook_secret and not hmac.compare_digest(
        x_webhook_secret or "", settings.webhook_secret
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret.",
        )

    if notification.type.upper() != "INSERT" or notification.table != changes.table:
        logger.info(
            "Ignoring change notification",
            extra={"event_type": notification.type, "table": notification.table},
        )
        return NotificationAck(status="ignored")

    record = notification.record or {}
    try:
        SensorReading.from_row(record)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid inserted record: {exc}.",
        ) from exc

    if isinstance(table, InMemorySensorTable) and table.changes is changes:
        table.insert(record)
        delivered = changes.subscriber_count
    else:
        delivered = changes.publish(record)
    return NotificationAck(status="accepted", delivered=delivered)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(feed: LiveReadingFeed = Depends(get_feed)) -> dict[str, str]:
    return {"status": "ok", "feed": "running" if feed.running else "stopped"}
