"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    ControlRequest,
    Coordinates,
    Measurement,
    TelemetryRequest,
    TelemetryResponse,
    WeatherReport,
    WindowStatus,
)
from services.coordinator import CoordinatorStatus, WindowCoordinator, build_default_coordinator
from services.decision import DecisionThresholds
from services.device_session import DeviceReading
from services.errors import InvalidCommandError, UnavailableDataError
from storage.reading_cache import CacheLookup

router = APIRouter()


def get_coordinator() -> WindowCoordinator:
    return build_default_coordinator()


def _status_payload(current: CoordinatorStatus) -> WindowStatus:
    state = current.state
    return WindowStatus(
        is_open=state.commanded_open,
        auto_mode=state.auto_mode,
        last_updated=state.last_updated,
        mode=state.mode,
        reported_open=state.reported_open,
        device_online=current.device_online,
        last_device_contact=state.last_device_contact_at,
    )


def _pollution_status(aqi: Optional[int], thresholds: DecisionThresholds) -> str:
    if aqi is None:
        return "unknown"
    if aqi < thresholds.pollution_low:
        return "good"
    if aqi <= thresholds.pollution_high:
        return "moderate"
    return "poor"


def _wind_status(wind_kph: float, thresholds: DecisionThresholds) -> str:
    if wind_kph < thresholds.wind_moderate_kph:
        return "calm"
    if wind_kph <= thresholds.wind_high_kph:
        return "breezy"
    return "strong"


def _sunlight_status(sunlight: Optional[float], thresholds: DecisionThresholds) -> str:
    if sunlight is None:
        return "unknown"
    if sunlight > thresholds.sunlight_min_pct:
        return "bright"
    if sunlight > 0:
        return "dim"
    return "dark"


def _weather_payload(lookup: CacheLookup, thresholds: DecisionThresholds) -> WeatherReport:
    reading = lookup.reading
    assert lookup.fetched_at is not None
    return WeatherReport(
        location=Coordinates(lat=lookup.key[0], lon=lookup.key[1]),
        temperature=Measurement(value=reading.temperature_c, unit="°C", status="current"),
        pollution=Measurement(
            value=reading.european_aqi,
            unit="EAQI",
            status=_pollution_status(reading.european_aqi, thresholds),
        ),
        wind_speed=Measurement(
            value=reading.wind_kph,
            unit="km/h",
            status=_wind_status(reading.wind_kph, thresholds),
        ),
        sunlight=Measurement(
            value=reading.sunlight_pct,
            unit="%",
            status=_sunlight_status(reading.sunlight_pct, thresholds),
        ),
        observed_at=reading.observed_at,
        fetched_at=lookup.fetched_at,
        stale=lookup.stale,
    )


@router.post(
    "/api/window/log",
    response_model=TelemetryResponse,
    summary="Device report; answers with the position the device must hold.",
)
async def report_telemetry(
    payload: TelemetryRequest,
    coordinator: WindowCoordinator = Depends(get_coordinator),
) -> TelemetryResponse:
    reading = None
    if payload.reading is not None:
        reading = DeviceReading(
            temperature_c=payload.reading.temperature_c,
            european_aqi=payload.reading.european_aqi,
        )
    commanded = coordinator.handle_telemetry(payload.reported_open, reading)
    return TelemetryResponse(commanded_open=commanded)


@router.post(
    "/api/window/control",
    response_model=WindowStatus,
    summary="Force the window open or closed, or hand control back to automation.",
)
async def control_window(
    payload: ControlRequest,
    coordinator: WindowCoordinator = Depends(get_coordinator),
) -> WindowStatus:
    try:
        coordinator.control(action=payload.action, auto_mode=payload.auto_mode)
    except InvalidCommandError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return _status_payload(coordinator.status())


@router.get(
    "/api/window/status",
    response_model=WindowStatus,
    summary="Current commanded position and control mode.",
)
async def window_status(
    coordinator: WindowCoordinator = Depends(get_coordinator),
) -> WindowStatus:
    return _status_payload(coordinator.status())


@router.get(
    "/api/weather",
    response_model=WeatherReport,
    summary="Latest cached environmental reading.",
)
async def weather(
    lat: Optional[float] = Query(None, ge=-90.0, le=90.0),
    lon: Optional[float] = Query(None, ge=-180.0, le=180.0),
    coordinator: WindowCoordinator = Depends(get_coordinator),
) -> WeatherReport:
    if (lat is None) != (lon is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide both 'lat' and 'lon', or neither.",
        )
    try:
        lookup = coordinator.weather(lat, lon)
    except UnavailableDataError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return _weather_payload(lookup, coordinator.engine.thresholds)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
