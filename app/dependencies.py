"""FastAPI dependency providers shared by the API and HTML routers."""

from __future__ import annotations

from functools import lru_cache

from datastore.changes import ChangeFeed, build_default_changes
from datastore.sensor_table import SensorTable, build_default_table
from services.charts import ChartTransformer, TimeWindow
from services.classifier import AlarmClassifier
from services.display import resolve_timezone
from services.feed import LiveReadingFeed, build_default_feed
from services.history import HistoryService, build_default_history
from settings import Settings, get_settings


def get_app_settings() -> Settings:
    return get_settings()


def get_feed() -> LiveReadingFeed:
    return build_default_feed()


def get_history() -> HistoryService:
    return build_default_history()


def get_table() -> SensorTable:
    return build_default_table()


def get_changes() -> ChangeFeed:
    return build_default_changes()


@lru_cache
def get_classifier() -> AlarmClassifier:
    return AlarmClassifier.from_bounds(get_settings().alarm_ranges)


@lru_cache
def get_transformer() -> ChartTransformer:
    return ChartTransformer(zone=resolve_timezone(get_settings().display_timezone))


def resolve_window(window: TimeWindow | None, settings: Settings) -> TimeWindow:
    if window is not None:
        return window
    try:
        return TimeWindow(settings.default_window)
    except ValueError:
        return TimeWindow.day
