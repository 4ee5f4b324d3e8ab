from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional, Tuple


_STORE_URL_ENV = "SUPABASE_URL"
_STORE_KEY_ENV = "SUPABASE_KEY"
_TABLE_NAME_ENV = "SENSOR_TABLE_NAME"
_SEED_PATH_ENV = "SENSOR_SEED_PATH"
_POLL_INTERVAL_ENV = "LIVE_POLL_INTERVAL"
_WORKER_COUNT_ENV = "HISTORY_WORKER_COUNT"
_STORE_TIMEOUT_ENV = "STORE_TIMEOUT"
_DEFAULT_WINDOW_ENV = "DEFAULT_WINDOW"
_TIMEZONE_ENV = "DISPLAY_TIMEZONE"
_ALARM_RANGES_ENV = "ALARM_RANGES"
_WEBHOOK_SECRET_ENV = "WEBHOOK_SECRET"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_ALARM_RANGES: Dict[str, Tuple[float, float]] = {
    "tank_temperature": (30.0, 40.0),
    "ph": (6.0, 8.0),
}


@dataclass(frozen=True)
class Settings:
    store_url: Optional[str]
    store_api_key: Optional[str]
    table_name: str
    seed_path: Optional[str]
    poll_interval: float
    history_workers: int
    store_timeout: float
    default_window: str
    display_timezone: str
    webhook_secret: Optional[str]
    log_level: str
    alarm_ranges: Dict[str, Tuple[float, float]] = field(
        default_factory=lambda: dict(DEFAULT_ALARM_RANGES)
    )


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_alarm_ranges() -> Dict[str, Tuple[float, float]]:
    """Merge ``ALARM_RANGES`` (JSON ``{"metric": [min, max]}``) over the defaults.

    Malformed documents are ignored as a whole; malformed entries are skipped.
    """
    ranges = dict(DEFAULT_ALARM_RANGES)
    value = os.getenv(_ALARM_RANGES_ENV)
    if value is None or not value.strip():
        return ranges
    try:
        payload = json.loads(value)
    except json.JSONDecodeError:
        return ranges
    if not isinstance(payload, dict):
        return ranges

    for metric, bounds in payload.items():
        if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
            continue
        try:
            low, high = float(bounds[0]), float(bounds[1])
        except (TypeError, ValueError):
            continue
        if low > high:
            continue
        ranges[str(metric)] = (low, high)
    return ranges


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_url=_read_optional_env(_STORE_URL_ENV, None),
        store_api_key=_read_optional_env(_STORE_KEY_ENV, None),
        table_name=_read_str_env(_TABLE_NAME_ENV, "sensor_data"),
        seed_path=_read_optional_env(_SEED_PATH_ENV, None),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 12.0),
        history_workers=_read_positive_int(_WORKER_COUNT_ENV, 2),
        store_timeout=_read_positive_float(_STORE_TIMEOUT_ENV, 10.0),
        default_window=_read_str_env(_DEFAULT_WINDOW_ENV, "1d"),
        display_timezone=_read_str_env(_TIMEZONE_ENV, "UTC"),
        webhook_secret=_read_optional_env(_WEBHOOK_SECRET_ENV, None),
        log_level=_read_log_level("INFO"),
        alarm_ranges=_read_alarm_ranges(),
    )
