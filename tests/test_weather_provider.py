from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from services.errors import FetchError
from services.weather_provider import OpenMeteoProvider

WEATHER_URL = "https://weather.test/v1/forecast"
AIR_URL = "https://air.test/v1/air-quality"
KEY = (45.18, 5.72)


def _provider(handler) -> OpenMeteoProvider:
    return OpenMeteoProvider(
        weather_url=WEATHER_URL,
        air_quality_url=AIR_URL,
        transport=httpx.MockTransport(handler),
    )


def _payloads(weather: dict, air: dict):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.host == "weather.test":
            return httpx.Response(200, json={"current": weather})
        return httpx.Response(200, json={"current": air})

    return handler, seen


def test_fetch_normalizes_both_endpoints() -> None:
    handler, seen = _payloads(
        {"time": "2024-06-01T12:00", "temperature_2m": 22.4, "wind_speed_10m": 11.0, "cloud_cover": 25, "is_day": 1},
        {"time": "2024-06-01T12:00", "european_aqi": 31},
    )
    provider = _provider(handler)

    reading = provider.fetch(KEY)

    assert reading.temperature_c == 22.4
    assert reading.wind_kph == 11.0
    assert reading.european_aqi == 31
    assert reading.sunlight_pct == 75.0
    assert reading.observed_at == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert seen[0].url.params["latitude"] == "45.18"
    assert seen[0].url.params["current"] == "temperature_2m,wind_speed_10m,cloud_cover,is_day"
    assert seen[1].url.params["current"] == "european_aqi"


def test_fetch_handles_night_and_missing_aqi() -> None:
    handler, _ = _payloads(
        {"temperature_2m": 12.0, "wind_speed_10m": 3.0, "cloud_cover": 0, "is_day": 0},
        {"european_aqi": None},
    )

    reading = _provider(handler).fetch(KEY)

    assert reading.sunlight_pct == 0.0
    assert reading.european_aqi is None


def test_http_error_becomes_fetch_error() -> None:
    provider = _provider(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(FetchError, match="502"):
        provider.fetch(KEY)


def test_transport_error_becomes_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError, match="unreachable"):
        _provider(handler).fetch(KEY)


def test_invalid_json_becomes_fetch_error() -> None:
    provider = _provider(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(FetchError, match="invalid JSON"):
        provider.fetch(KEY)


def test_missing_fields_become_fetch_error() -> None:
    handler, _ = _payloads({"temperature_2m": 12.0}, {"european_aqi": 10})

    with pytest.raises(FetchError, match="Malformed"):
        _provider(handler).fetch(KEY)
