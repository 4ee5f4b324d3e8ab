"""In-process fan-out of insert notifications from the sensor store."""

from __future__ import annotations

import logging
from functools import lru_cache
from itertools import count
from threading import Lock
from typing import Any, Callable, Dict, Mapping

from settings import get_settings

logger = logging.getLogger(__name__)

InsertCallback = Callable[[Mapping[str, Any]], None]


class Subscription:
    """Handle returned by :meth:`ChangeFeed.subscribe`."""

    def __init__(self, feed: "ChangeFeed", subscription_id: int) -> None:
        self._feed = feed
        self.subscription_id = subscription_id
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self._feed._remove(self.subscription_id)
        self.active = False


class ChangeFeed:
    """Delivers newly inserted rows to every subscriber, in subscription order."""

    def __init__(self, table: str) -> None:
        self.table = table
        self._callbacks: Dict[int, InsertCallback] = {}
        self._ids = count(1)
        self._lock = Lock()

    def subscribe(self, callback: InsertCallback) -> Subscription:
        with self._lock:
            subscription_id = next(self._ids)
            self._callbacks[subscription_id] = callback
        return Subscription(self, subscription_id)

    def publish(self, record: Mapping[str, Any]) -> int:
        """Hand ``record`` to all subscribers and return how many received it."""
        with self._lock:
            callbacks = list(self._callbacks.values())

        delivered = 0
        for callback in callbacks:
            try:
                callback(record)
            except Exception:  # noqa: BLE001 - remaining subscribers still receive the row
                logger.exception(
                    "Insert subscriber failed",
                    extra={"table": self.table, "timestamp": record.get("timestamp")},
                )
                continue
            delivered += 1
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def _remove(self, subscription_id: int) -> None:
        with self._lock:
            self._callbacks.pop(subscription_id, None)


@lru_cache
def build_default_changes(table: str | None = None) -> ChangeFeed:
    return ChangeFeed(table=table or get_settings().table_name)
