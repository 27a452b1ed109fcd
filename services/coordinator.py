"""Wires cache, decision engine, arbiter and device session together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from threading import Lock
from typing import Iterable, Optional

from models.readings import LocationKey, format_location, location_key
from models.state import CoordinatorState
from services.arbiter import CommandArbiter
from services.decision import Decision, DecisionEngine, DecisionThresholds
from services.device_session import DeviceReading, DeviceSessionHandler
from services.errors import InvalidCommandError, UnavailableDataError
from services.scheduler import PeriodicTask
from services.weather_provider import OpenMeteoProvider
from settings import get_settings
from storage.reading_cache import Clock, CacheLookup, ReadingCache, ReadingProvider, utcnow

logger = logging.getLogger(__name__)

ACTIONS = {"open": True, "close": False}


@dataclass(frozen=True)
class CoordinatorStatus:
    state: CoordinatorState
    device_online: bool


class WindowCoordinator:
    """Owns the periodic tasks and exposes the operations clients call."""

    def __init__(
        self,
        cache: ReadingCache,
        provider: ReadingProvider,
        arbiter: CommandArbiter,
        engine: DecisionEngine,
        session: DeviceSessionHandler,
        locations: Iterable[LocationKey] = (),
        max_tracked_locations: int = 16,
        location_precision: int = 2,
        refresh_interval: float = 60.0,
        decision_tick: float = 10.0,
        background_tasks: bool = True,
        clock: Clock = utcnow,
    ) -> None:
        self.cache = cache
        self.provider = provider
        self.arbiter = arbiter
        self.engine = engine
        self.session = session
        self.max_tracked_locations = max_tracked_locations
        self.location_precision = location_precision
        self.background_tasks = background_tasks
        self.last_decision: Optional[Decision] = None
        self._clock = clock
        self._tracked: list[LocationKey] = []
        self._tracked_lock = Lock()
        for key in (engine.location, *locations):
            self._track(key, enforce_limit=False)
        self._tasks = [
            PeriodicTask("reading-refresh", refresh_interval, self.refresh_locations),
            PeriodicTask("auto-decision", decision_tick, self.evaluate),
        ]

    @property
    def default_location(self) -> LocationKey:
        return self.engine.location

    def start(self) -> None:
        if not self.background_tasks:
            logger.info("Background tasks disabled")
            return
        for task in self._tasks:
            task.start()

    def shutdown(self) -> None:
        for task in self._tasks:
            task.stop()
        close = getattr(self.provider, "close", None)
        if callable(close):
            close()

    def tracked_locations(self) -> list[LocationKey]:
        with self._tracked_lock:
            return list(self._tracked)

    def refresh_locations(self) -> int:
        """Refresh every tracked location; return how many succeeded."""
        refreshed = 0
        for key in self.tracked_locations():
            if self.cache.refresh(key, self.provider) is not None:
                refreshed += 1
        return refreshed

    def evaluate(self) -> Optional[Decision]:
        """One decision tick: ask the engine, hand any result to the arbiter."""
        now = self._clock()
        state = self.arbiter.snapshot()
        decision = self.engine.maybe_decide(now, state.last_decision_at)
        if decision is None:
            return None
        self.last_decision = decision
        self.arbiter.apply_automatic_decision(decision.open, min_interval=self.engine.interval)
        return decision

    def control(self, action: Optional[str] = None, auto_mode: Optional[bool] = None) -> CoordinatorState:
        if action is not None:
            if action not in ACTIONS:
                raise InvalidCommandError(f"Unknown action {action!r}; expected 'open' or 'close'.")
            return self.arbiter.set_manual(ACTIONS[action])
        if auto_mode is True:
            return self.arbiter.set_auto_mode()
        if auto_mode is False:
            return self.arbiter.hold_position()
        raise InvalidCommandError("Control request needs an 'action' or 'autoMode'.")

    def handle_telemetry(self, reported_open: bool, reading: Optional[DeviceReading] = None) -> bool:
        return self.session.handle_telemetry(reported_open, reading)

    def status(self) -> CoordinatorStatus:
        now = self._clock()
        return CoordinatorStatus(
            state=self.arbiter.snapshot(),
            device_online=self.session.is_online(now),
        )

    def weather(self, lat: Optional[float] = None, lon: Optional[float] = None) -> CacheLookup:
        """Cached reading for a location, registering it for refresh if new.

        Raises ``UnavailableDataError`` until the first provider reading lands;
        device-only data resting on the default reading is never shown.
        """
        if lat is None or lon is None:
            key = self.default_location
        else:
            key = location_key(lat, lon, self.location_precision)
            self._track(key)
        lookup = self.cache.get(key)
        if lookup.fallback:
            raise UnavailableDataError(
                f"Only partial device data cached for location {format_location(key)}."
            )
        return lookup

    def _track(self, key: LocationKey, enforce_limit: bool = True) -> None:
        with self._tracked_lock:
            if key in self._tracked:
                return
            if enforce_limit and len(self._tracked) >= self.max_tracked_locations:
                raise ValueError(
                    f"Cannot track {format_location(key)}: limit of "
                    f"{self.max_tracked_locations} locations reached."
                )
            self._tracked.append(key)
        logger.info("Tracking location", extra={"location": format_location(key)})


@lru_cache
def build_default_coordinator() -> WindowCoordinator:
    """Factory that wires the coordinator from environment settings."""
    settings = get_settings()
    precision = settings.location_precision
    default_key = location_key(*settings.default_location, precision)
    cache = ReadingCache(ttl=timedelta(seconds=settings.cache_ttl_seconds))
    arbiter = CommandArbiter()
    engine = DecisionEngine(
        cache=cache,
        location=default_key,
        interval=timedelta(seconds=settings.decision_interval_seconds),
        thresholds=DecisionThresholds.from_settings(settings),
    )
    session = DeviceSessionHandler(
        arbiter=arbiter,
        cache=cache,
        location=default_key,
        timeout=timedelta(seconds=settings.device_timeout_seconds),
    )
    return WindowCoordinator(
        cache=cache,
        provider=OpenMeteoProvider.from_settings(settings),
        arbiter=arbiter,
        engine=engine,
        session=session,
        locations=[location_key(lat, lon, precision) for lat, lon in settings.extra_locations],
        max_tracked_locations=settings.max_tracked_locations,
        location_precision=precision,
        refresh_interval=settings.refresh_interval_seconds,
        decision_tick=settings.decision_tick_seconds,
        background_tasks=settings.background_tasks,
    )
