from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_DEFAULT_LAT_ENV = "WINDOW_DEFAULT_LAT"
_DEFAULT_LON_ENV = "WINDOW_DEFAULT_LON"
_EXTRA_LOCATIONS_ENV = "WINDOW_EXTRA_LOCATIONS"
_PRECISION_ENV = "WINDOW_LOCATION_PRECISION"
_MAX_LOCATIONS_ENV = "WINDOW_MAX_TRACKED_LOCATIONS"
_CACHE_TTL_ENV = "WINDOW_CACHE_TTL_SECONDS"
_REFRESH_INTERVAL_ENV = "WINDOW_REFRESH_INTERVAL_SECONDS"
_DECISION_INTERVAL_ENV = "WINDOW_DECISION_INTERVAL_SECONDS"
_DECISION_TICK_ENV = "WINDOW_DECISION_TICK_SECONDS"
_DEVICE_TIMEOUT_ENV = "WINDOW_DEVICE_TIMEOUT_SECONDS"
_POLLUTION_HIGH_ENV = "WINDOW_POLLUTION_HIGH"
_POLLUTION_LOW_ENV = "WINDOW_POLLUTION_LOW"
_WIND_HIGH_ENV = "WINDOW_WIND_HIGH_KPH"
_WIND_MODERATE_ENV = "WINDOW_WIND_MODERATE_KPH"
_SUNLIGHT_MIN_ENV = "WINDOW_SUNLIGHT_MIN_PCT"
_TEMPERATURE_HIGH_ENV = "WINDOW_TEMPERATURE_HIGH_C"
_WEATHER_URL_ENV = "WINDOW_WEATHER_BASE_URL"
_AIR_QUALITY_URL_ENV = "WINDOW_AIR_QUALITY_BASE_URL"
_PROVIDER_TIMEOUT_ENV = "WINDOW_PROVIDER_TIMEOUT_SECONDS"
_BACKGROUND_ENV = "WINDOW_BACKGROUND_TASKS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_AIR_QUALITY_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"

Coordinates = Tuple[float, float]


@dataclass(frozen=True)
class Settings:
    default_location: Coordinates
    extra_locations: Tuple[Coordinates, ...]
    location_precision: int
    max_tracked_locations: int
    cache_ttl_seconds: float
    refresh_interval_seconds: float
    decision_interval_seconds: float
    decision_tick_seconds: float
    device_timeout_seconds: float
    pollution_high: int
    pollution_low: int
    wind_high_kph: float
    wind_moderate_kph: float
    sunlight_min_pct: float
    temperature_high_c: Optional[float]
    weather_base_url: str
    air_quality_base_url: str
    provider_timeout_seconds: float
    background_tasks: bool
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        return float(candidate)
    except ValueError:
        return default


def _read_optional_float_env(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        return float(candidate)
    except ValueError:
        return None


def _read_positive_float_env(name: str, default: float) -> float:
    parsed = _read_float_env(name, default)
    return parsed if parsed > 0 else default


def _read_positive_int_env(name: str, default: int) -> int:
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


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_locations_env(name: str) -> Tuple[Coordinates, ...]:
    """Parse ``lat,lon;lat,lon`` pairs, skipping malformed entries."""
    value = os.getenv(name)
    if not value:
        return ()
    locations: list[Coordinates] = []
    for chunk in value.split(";"):
        parts = [part.strip() for part in chunk.split(",")]
        if len(parts) != 2:
            continue
        try:
            lat, lon = float(parts[0]), float(parts[1])
        except ValueError:
            continue
        if -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0:
            locations.append((lat, lon))
    return tuple(locations)


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
        default_location=(
            _read_float_env(_DEFAULT_LAT_ENV, 45.18),
            _read_float_env(_DEFAULT_LON_ENV, 5.72),
        ),
        extra_locations=_read_locations_env(_EXTRA_LOCATIONS_ENV),
        location_precision=_read_positive_int_env(_PRECISION_ENV, 2),
        max_tracked_locations=_read_positive_int_env(_MAX_LOCATIONS_ENV, 16),
        cache_ttl_seconds=_read_positive_float_env(_CACHE_TTL_ENV, 600.0),
        refresh_interval_seconds=_read_positive_float_env(_REFRESH_INTERVAL_ENV, 60.0),
        decision_interval_seconds=_read_positive_float_env(_DECISION_INTERVAL_ENV, 900.0),
        decision_tick_seconds=_read_positive_float_env(_DECISION_TICK_ENV, 10.0),
        device_timeout_seconds=_read_positive_float_env(_DEVICE_TIMEOUT_ENV, 30.0),
        pollution_high=int(_read_float_env(_POLLUTION_HIGH_ENV, 50)),
        pollution_low=int(_read_float_env(_POLLUTION_LOW_ENV, 40)),
        wind_high_kph=_read_float_env(_WIND_HIGH_ENV, 40.0),
        wind_moderate_kph=_read_float_env(_WIND_MODERATE_ENV, 20.0),
        sunlight_min_pct=_read_float_env(_SUNLIGHT_MIN_ENV, 60.0),
        temperature_high_c=_read_optional_float_env(_TEMPERATURE_HIGH_ENV),
        weather_base_url=_read_str_env(_WEATHER_URL_ENV, DEFAULT_WEATHER_URL),
        air_quality_base_url=_read_str_env(_AIR_QUALITY_URL_ENV, DEFAULT_AIR_QUALITY_URL),
        provider_timeout_seconds=_read_positive_float_env(_PROVIDER_TIMEOUT_ENV, 7.0),
        background_tasks=_read_bool_env(_BACKGROUND_ENV, True),
        log_level=_read_log_level("INFO"),
    )
