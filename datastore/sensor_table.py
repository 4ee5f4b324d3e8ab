"""Query interface to the external table of sensor readings."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import httpx

from datastore.changes import ChangeFeed, build_default_changes
from models.records import SensorReading
from settings import get_settings

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the sensor store cannot answer a query."""


class SensorTable(Protocol):
    name: str

    def fetch_latest(self) -> Optional[SensorReading]:
        ...

    def fetch_since(self, start: datetime) -> List[SensorReading]:
        ...

    def close(self) -> None:
        ...


def parse_rows(rows: Iterable[Any], table: str) -> List[SensorReading]:
    """Convert raw rows, skipping (and logging) rows that cannot be parsed."""
    readings: List[SensorReading] = []
    for row in rows:
        if not isinstance(row, Mapping):
            logger.warning("Skipping row", extra={"table": table, "reason": "not an object"})
            continue
        try:
            readings.append(SensorReading.from_row(row))
        except ValueError as exc:
            logger.warning(
                "Skipping row",
                extra={"table": table, "reason": str(exc), "timestamp": row.get("timestamp")},
            )
    return readings


class InMemorySensorTable:
    """Process-local table, optionally seeded from a JSON array of rows.

    Inserts are published on the attached change feed, the same way the hosted
    database notifies the dashboard through its webhook.
    """

    def __init__(
        self,
        name: str,
        changes: Optional[ChangeFeed] = None,
        seed_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.changes = changes
        self.seed_path = seed_path
        self._rows: List[SensorReading] = []
        self._lock = Lock()
        if seed_path:
            self._load_seed()

    def insert(self, row: Mapping[str, Any]) -> SensorReading:
        reading = SensorReading.from_row(row)
        with self._lock:
            self._rows.append(reading)
        if self.changes is not None:
            self.changes.publish(reading.to_row())
        return reading

    def fetch_latest(self) -> Optional[SensorReading]:
        with self._lock:
            if not self._rows:
                return None
            return max(self._rows, key=lambda reading: reading.observed_at)

    def fetch_since(self, start: datetime) -> List[SensorReading]:
        with self._lock:
            rows = [reading for reading in self._rows if reading.observed_at >= start]
        return sorted(rows, key=lambda reading: reading.observed_at)

    def close(self) -> None:
        """Nothing to release for a process-local table."""

    def _load_seed(self) -> None:
        if not self.seed_path or not self.seed_path.exists():
            return

        try:
            raw = self.seed_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable seed file", extra={"table": self.name, "reason": str(exc)})
            data = []

        if not isinstance(data, list):
            data = []
        self._rows.extend(parse_rows(data, self.name))
        logger.info("Seeded sensor table", extra={"table": self.name, "row_count": len(self._rows)})


class RestSensorTable:
    """PostgREST client for the hosted ``sensor_data`` table (e.g. Supabase)."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        name: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.name = name
        headers: Dict[str, str] = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def fetch_latest(self) -> Optional[SensorReading]:
        rows = self._select({"select": "*", "order": "timestamp.desc", "limit": "1"})
        readings = parse_rows(rows, self.name)
        return readings[0] if readings else None

    def fetch_since(self, start: datetime) -> List[SensorReading]:
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        lower_bound = start.astimezone(timezone.utc).isoformat()
        rows = self._select(
            {"select": "*", "timestamp": f"gte.{lower_bound}", "order": "timestamp.asc"}
        )
        readings = parse_rows(rows, self.name)
        return sorted(readings, key=lambda reading: reading.observed_at)

    def _select(self, params: Dict[str, str]) -> List[Any]:
        try:
            response = self._client.get(f"/{self.name}", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise StoreError(
                f"Query on {self.name!r} failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Query on {self.name!r} failed: {exc}") from exc
        except ValueError as exc:
            raise StoreError(f"Query on {self.name!r} returned invalid JSON.") from exc

        if not isinstance(payload, list):
            raise StoreError(f"Query on {self.name!r} returned an unexpected payload.")
        return payload


@lru_cache
def build_default_table() -> SensorTable:
    settings = get_settings()
    if settings.store_url:
        return RestSensorTable(
            base_url=settings.store_url,
            api_key=settings.store_api_key,
            name=settings.table_name,
            timeout=settings.store_timeout,
        )
    seed = Path(settings.seed_path) if settings.seed_path else None
    return InMemorySensorTable(
        name=settings.table_name,
        changes=build_default_changes(),
        seed_path=seed,
    )
