"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.state import Mode


class CamelModel(BaseModel):
    """Exchanges camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceReadingPayload(CamelModel):
    """Readings measured by the device's own sensors."""

    temperature_c: float = Field(
        ..., validation_alias=AliasChoices("temperatureC", "temp", "temperature_c")
    )
    european_aqi: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("europeanAqi", "aqi", "european_aqi"),
    )


class TelemetryRequest(CamelModel):
    """Periodic report sent by the window device."""

    reported_open: bool = Field(
        ...,
        validation_alias=AliasChoices("reportedOpen", "isOpen", "reported_open"),
        description="Position the device is physically in.",
    )
    reading: Optional[DeviceReadingPayload] = None


class TelemetryResponse(CamelModel):
    commanded_open: bool = Field(..., description="Position the device must move to.")


class ControlRequest(CamelModel):
    """Manual control issued by an operator."""

    action: Optional[Literal["open", "close"]] = None
    auto_mode: Optional[bool] = None


class WindowStatus(CamelModel):
    """Read-only projection of the coordinator state."""

    is_open: bool = Field(..., description="Commanded position.")
    auto_mode: bool
    last_updated: Optional[datetime] = None
    mode: Mode
    reported_open: Optional[bool] = None
    device_online: bool = False
    last_device_contact: Optional[datetime] = None


class Measurement(CamelModel):
    value: Optional[float] = None
    unit: str
    status: str


class Coordinates(CamelModel):
    lat: float
    lon: float


class WeatherReport(CamelModel):
    """Cached environmental reading with display labels."""

    location: Coordinates
    temperature: Measurement
    pollution: Measurement
    wind_speed: Measurement
    sunlight: Measurement
    observed_at: datetime
    fetched_at: datetime
    stale: bool
