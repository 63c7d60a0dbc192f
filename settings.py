from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_HISTORY_CAPACITY_ENV = "HISTORY_CAPACITY"
_HISTORY_LIMIT_ENV = "HISTORY_DEFAULT_LIMIT"
_STATS_HOURS_ENV = "STATS_DEFAULT_HOURS"
_POLL_URL_ENV = "ECOWITT_API_URL"
_APPLICATION_KEY_ENV = "ECOWITT_APPLICATION_KEY"
_API_KEY_ENV = "ECOWITT_API_KEY"
_DEVICE_MAC_ENV = "ECOWITT_MAC"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_POLL_DELAY_ENV = "POLL_INITIAL_DELAY_SECONDS"
_POLL_TIMEOUT_ENV = "POLL_TIMEOUT_SECONDS"
_CORS_ORIGINS_ENV = "CORS_ALLOWED_ORIGINS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_POLL_URL = "https://api.ecowitt.net/api/v3/device/real_time"


@dataclass(frozen=True)
class Settings:
    history_capacity: int
    history_default_limit: int
    stats_default_hours: float
    poll_url: str
    application_key: Optional[str]
    api_key: Optional[str]
    device_mac: Optional[str]
    poll_interval: float
    poll_initial_delay: float
    poll_timeout: float
    cors_origins: Tuple[str, ...]
    log_level: str

    @property
    def poll_enabled(self) -> bool:
        return bool(self.application_key and self.api_key and self.device_mac)


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


def _read_float(name: str, default: float, allow_zero: bool = False) -> float:
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
    if parsed > 0 or (allow_zero and parsed == 0):
        return parsed
    return default


def _read_origins(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_CORS_ORIGINS_ENV)
    if value is None:
        return default
    origins = tuple(origin.strip() for origin in value.split(",") if origin.strip())
    return origins or default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        history_capacity=_read_positive_int(_HISTORY_CAPACITY_ENV, 10_000),
        history_default_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 100),
        stats_default_hours=_read_float(_STATS_HOURS_ENV, 24.0),
        poll_url=_read_str_env(_POLL_URL_ENV, DEFAULT_POLL_URL),
        application_key=_read_optional_env(_APPLICATION_KEY_ENV, None),
        api_key=_read_optional_env(_API_KEY_ENV, None),
        device_mac=_read_optional_env(_DEVICE_MAC_ENV, None),
        poll_interval=_read_float(_POLL_INTERVAL_ENV, 60.0),
        poll_initial_delay=_read_float(_POLL_DELAY_ENV, 10.0, allow_zero=True),
        poll_timeout=_read_float(_POLL_TIMEOUT_ENV, 10.0),
        cors_origins=_read_origins(("*",)),
        log_level=_read_log_level("INFO"),
    )
