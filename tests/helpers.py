"""Test doubles shared across modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from models.readings import LocationKey, NormalizedReading
from services.arbiter import CommandArbiter
from services.coordinator import WindowCoordinator
from services.decision import DecisionEngine
from services.device_session import DeviceSessionHandler
from services.errors import FetchError
from storage.reading_cache import ReadingCache

START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for cadence and TTL tests."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class StubProvider:
    def __init__(self, readings: Optional[Dict[LocationKey, NormalizedReading]] = None) -> None:
        self.readings = dict(readings or {})
        self.calls: List[LocationKey] = []
        self.error: Optional[str] = None
        self.closed = False

    def fetch(self, key: LocationKey) -> NormalizedReading:
        self.calls.append(key)
        if self.error is not None:
            raise FetchError(self.error)
        try:
            return self.readings[key]
        except KeyError as exc:
            raise FetchError(f"no data for {key}") from exc

    def close(self) -> None:
        self.closed = True


def make_reading(
    aqi: Optional[int] = 20,
    wind: float = 5.0,
    sunlight: Optional[float] = 80.0,
    temperature: float = 21.0,
) -> NormalizedReading:
    return NormalizedReading(
        temperature_c=temperature,
        wind_kph=wind,
        european_aqi=aqi,
        sunlight_pct=sunlight,
        observed_at=START,
    )


HOME = (45.18, 5.72)


def build_coordinator(
    clock: FakeClock,
    provider: StubProvider,
    decision_interval: float = 900.0,
    max_tracked_locations: int = 16,
) -> WindowCoordinator:
    """Coordinator wired with in-memory doubles and no background threads."""
    cache = ReadingCache(ttl=timedelta(minutes=10), clock=clock)
    arbiter = CommandArbiter(clock=clock)
    engine = DecisionEngine(cache=cache, location=HOME, interval=timedelta(seconds=decision_interval))
    session = DeviceSessionHandler(
        arbiter=arbiter,
        cache=cache,
        location=HOME,
        timeout=timedelta(seconds=30),
        clock=clock,
    )
    return WindowCoordinator(
        cache=cache,
        provider=provider,
        arbiter=arbiter,
        engine=engine,
        session=session,
        max_tracked_locations=max_tracked_locations,
        background_tasks=False,
        clock=clock,
    )
