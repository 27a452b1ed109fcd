"""Environmental readings and the coordinate keys they are cached under."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

LocationKey = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class NormalizedReading:
    """Provider-independent snapshot of outdoor conditions.

    ``european_aqi`` and ``sunlight_pct`` are ``None`` when the provider had
    no value for the location.
    """

    temperature_c: float
    wind_kph: float
    european_aqi: Optional[int]
    sunlight_pct: Optional[float]
    observed_at: datetime


# Used only to keep automatic decisions moving when no reading ever arrived.
# Unknown pollution and sunlight can never open the window.
DEFAULT_READING = NormalizedReading(
    temperature_c=20.0,
    wind_kph=0.0,
    european_aqi=None,
    sunlight_pct=None,
    observed_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
)


def location_key(lat: float, lon: float, precision: int = 2) -> LocationKey:
    """Round a coordinate pair to the cache key precision."""
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"Latitude {lat} is out of range.")
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"Longitude {lon} is out of range.")
    # Adding 0.0 normalizes -0.0 so both signs share one key.
    return (round(lat, precision) + 0.0, round(lon, precision) + 0.0)


def format_location(key: LocationKey) -> str:
    return f"{key[0]},{key[1]}"
