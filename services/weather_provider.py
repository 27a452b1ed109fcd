"""Open-Meteo client producing normalized readings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from models.readings import LocationKey, NormalizedReading
from services.errors import FetchError
from settings import Settings

_WEATHER_FIELDS = "temperature_2m,wind_speed_10m,cloud_cover,is_day"
_AIR_QUALITY_FIELDS = "european_aqi"


class OpenMeteoProvider:
    """Fetches current weather and air quality for one coordinate pair.

    Every failure mode (transport, HTTP status, malformed payload) surfaces as
    :class:`FetchError` so callers handle a single exception type.
    """

    def __init__(
        self,
        weather_url: str,
        air_quality_url: str,
        timeout: float = 7.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.weather_url = weather_url
        self.air_quality_url = air_quality_url
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenMeteoProvider":
        return cls(
            weather_url=settings.weather_base_url,
            air_quality_url=settings.air_quality_base_url,
            timeout=settings.provider_timeout_seconds,
        )

    def close(self) -> None:
        self._client.close()

    def fetch(self, key: LocationKey) -> NormalizedReading:
        weather = self._get_current(self.weather_url, key, _WEATHER_FIELDS)
        air = self._get_current(self.air_quality_url, key, _AIR_QUALITY_FIELDS)
        try:
            return NormalizedReading(
                temperature_c=float(weather["temperature_2m"]),
                wind_kph=float(weather["wind_speed_10m"]),
                european_aqi=_optional_int(air.get("european_aqi")),
                sunlight_pct=_sunlight_pct(weather.get("cloud_cover"), weather.get("is_day")),
                observed_at=_parse_time(weather.get("time")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"Malformed provider payload: {exc!r}") from exc

    def _get_current(self, url: str, key: LocationKey, fields: str) -> Dict[str, Any]:
        params = {"latitude": key[0], "longitude": key[1], "current": fields, "timezone": "GMT"}
        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"{url} answered {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"{url} unreachable: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"{url} returned invalid JSON") from exc

        current = payload.get("current") if isinstance(payload, dict) else None
        if not isinstance(current, dict):
            raise FetchError(f"{url} response has no 'current' block")
        return current


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(round(float(value)))


def _sunlight_pct(cloud_cover: Any, is_day: Any) -> Optional[float]:
    if cloud_cover is None:
        return None
    if is_day is not None and not int(is_day):
        return 0.0
    return max(0.0, min(100.0, 100.0 - float(cloud_cover)))


def _parse_time(value: Any) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
