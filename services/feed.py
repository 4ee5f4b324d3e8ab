"""Keeps the most recent sensor reading current via push and polling."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from threading import Lock
from typing import Any, Mapping, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from datastore.changes import ChangeFeed, Subscription, build_default_changes
from datastore.sensor_table import SensorTable, StoreError, build_default_table
from models.records import SensorReading
from settings import get_settings

logger = logging.getLogger(__name__)

_POLL_JOB_ID = "live-reading-poll"


@dataclass(frozen=True)
class FeedSnapshot:
    reading: Optional[SensorReading]
    loading: bool


class LiveReadingFeed:
    """Owns a single reading slot fed by insert notifications and a poller.

    Updates whose timestamp is not newer than the held reading are ignored,
    so a late or duplicated delivery never regresses the displayed values.
    """

    def __init__(
        self,
        table: SensorTable,
        changes: ChangeFeed,
        poll_interval: float = 12.0,
    ) -> None:
        self.table = table
        self.changes = changes
        self.poll_interval = poll_interval
        self._reading: Optional[SensorReading] = None
        self._loading = True
        self._lock = Lock()
        self._scheduler: Optional[BackgroundScheduler] = None
        self._subscription: Optional[Subscription] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Subscribe to inserts and schedule the periodic query, first run immediately."""
        if self._scheduler is not None:
            return
        self._subscription = self.changes.subscribe(self.on_insert)
        scheduler = BackgroundScheduler(timezone=timezone.utc)
        scheduler.add_job(
            self.refresh,
            IntervalTrigger(seconds=self.poll_interval),
            id=_POLL_JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Live reading poller started",
            extra={"table": self.table.name, "source": "poll"},
        )

    def stop(self, wait: bool = True) -> None:
        """Release the insert subscription and shut the poller down."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None or not scheduler.running:
            return
        if scheduler.get_job(_POLL_JOB_ID) is not None:
            scheduler.remove_job(_POLL_JOB_ID)
        scheduler.shutdown(wait=wait)
        logger.info(
            "Live reading poller stopped",
            extra={"table": self.table.name, "source": "poll"},
        )

    def snapshot(self) -> FeedSnapshot:
        with self._lock:
            return FeedSnapshot(reading=self._reading, loading=self._loading)

    def refresh(self) -> bool:
        """Query the latest reading once; returns whether the held reading changed."""
        try:
            latest = self.table.fetch_latest()
        except StoreError as exc:
            logger.warning(
                "Latest reading query failed; keeping previous reading",
                extra={"table": self.table.name, "source": "poll", "reason": str(exc)},
            )
            with self._lock:
                self._loading = False
            return False

        if latest is None:
            with self._lock:
                self._loading = False
            return False
        return self._apply(latest, source="poll")

    def on_insert(self, record: Mapping[str, Any]) -> None:
        try:
            reading = SensorReading.from_row(record)
        except ValueError as exc:
            logger.warning(
                "Ignoring malformed insert notification",
                extra={"table": self.table.name, "source": "push", "reason": str(exc)},
            )
            return
        self._apply(reading, source="push")

    def _apply(self, reading: SensorReading, source: str) -> bool:
        with self._lock:
            held = self._reading
            if held is not None and reading.observed_at <= held.observed_at:
                stale = True
            else:
                self._reading = reading
                self._loading = False
                stale = False

        if stale:
            logger.debug(
                "Ignoring reading that is not newer than the held one",
                extra={"source": source, "timestamp": reading.timestamp},
            )
            return False
        logger.info("Live reading updated", extra={"source": source, "timestamp": reading.timestamp})
        return True


@lru_cache
def build_default_feed() -> LiveReadingFeed:
    settings = get_settings()
    return LiveReadingFeed(
        table=build_default_table(),
        changes=build_default_changes(),
        poll_interval=settings.poll_interval,
    )
