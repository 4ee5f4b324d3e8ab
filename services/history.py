"""Historical window queries backing the charts view."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, List, Optional

from datastore.sensor_table import SensorTable, StoreError, build_default_table
from models.records import SensorReading
from services.charts import TimeWindow
from settings import get_settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HistorySnapshot:
    """State of the charts working set at one instant."""

    window: TimeWindow
    # Window the held readings were fetched for; differs from ``window`` after a failed fetch.
    data_window: Optional[TimeWindow]
    readings: List[SensorReading] = field(default_factory=list)
    loading: bool = False
    failed: bool = False


class HistoryService:
    """Fetches a bounded window of readings and owns the resulting working set.

    Every :meth:`select_window` call is tagged with a generation number. Only
    the response of the most recent generation may replace the working set;
    responses that arrive after a newer selection are discarded.
    """

    def __init__(
        self,
        table: SensorTable,
        workers: int = 2,
        clock: Clock = _utcnow,
        initial_window: TimeWindow = TimeWindow.day,
    ) -> None:
        self.table = table
        self.clock = clock
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="history")
        self._lock = Lock()
        self._generation = 0
        self._window = initial_window
        self._data_window: Optional[TimeWindow] = None
        self._readings: List[SensorReading] = []
        self._loading = False
        self._failed = False

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def fetch_window(self, hours: float) -> List[SensorReading]:
        """Readings with ``timestamp >= now - hours``, ascending."""
        start = self.clock() - timedelta(hours=hours)
        return self.table.fetch_since(start)

    def select_window(self, window: TimeWindow) -> Future[bool]:
        """Start exactly one fetch for ``window``.

        The returned future resolves to ``True`` when the fetched readings were
        applied to the working set.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._window = window
            self._loading = True
        return self.executor.submit(self._load, window, generation)

    def show(self, window: TimeWindow, timeout: Optional[float] = None) -> HistorySnapshot:
        """Select ``window`` and wait up to ``timeout`` for its fetch.

        A fetch that is still running when the timeout expires leaves the
        last-known working set in a loading state. When a newer selection for
        another window overtakes this one, the caller gets an empty loading
        snapshot for ``window`` instead of the other window's readings.
        """
        future = self.select_window(window)
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning(
                "Window query still pending; serving last-known data",
                extra={"window": window.value, "table": self.table.name},
            )

        snapshot = self.snapshot()
        if snapshot.window is not window:
            return HistorySnapshot(window=window, data_window=None, loading=True)
        return snapshot

    def snapshot(self) -> HistorySnapshot:
        with self._lock:
            return HistorySnapshot(
                window=self._window,
                data_window=self._data_window,
                readings=list(self._readings),
                loading=self._loading,
                failed=self._failed,
            )

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _load(self, window: TimeWindow, generation: int) -> bool:
        context = {"window": window.value, "generation": generation, "table": self.table.name}
        try:
            readings = self.fetch_window(window.hours)
        except StoreError as exc:
            logger.warning("Window query failed; keeping current data", extra={**context, "reason": str(exc)})
            with self._lock:
                if generation == self._generation:
                    self._loading = False
                    self._failed = True
            return False

        with self._lock:
            if generation != self._generation:
                stale = True
            else:
                stale = False
                self._readings = readings
                self._data_window = window
                self._loading = False
                self._failed = False

        if stale:
            logger.info("Discarding stale window response", extra=context)
            return False
        logger.info("Window loaded", extra={**context, "row_count": len(readings)})
        return True


@lru_cache
def build_default_history(workers: Optional[int] = None) -> HistoryService:
    settings = get_settings()
    try:
        initial = TimeWindow(settings.default_window)
    except ValueError:
        initial = TimeWindow.day
    return HistoryService(
        table=build_default_table(),
        workers=workers or settings.history_workers,
        initial_window=initial,
    )
