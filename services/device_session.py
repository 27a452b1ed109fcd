"""Report-and-fetch round trip used by the window device."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from models.readings import LocationKey, NormalizedReading, format_location
from services.arbiter import CommandArbiter
from storage.reading_cache import Clock, ReadingCache, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeviceReading:
    """Partial reading measured by the device's own sensors."""

    temperature_c: float
    european_aqi: Optional[int] = None


class DeviceSessionHandler:
    def __init__(
        self,
        arbiter: CommandArbiter,
        cache: ReadingCache,
        location: LocationKey,
        timeout: timedelta,
        clock: Clock = utcnow,
    ) -> None:
        self.arbiter = arbiter
        self.cache = cache
        self.location = location
        self.timeout = timeout
        self._clock = clock

    def handle_telemetry(self, reported_open: bool, reading: Optional[DeviceReading] = None) -> bool:
        """Record the device's report and return the position it should hold.

        Safe to repeat: a retried or duplicated report only refreshes the
        contact time and yields the same command.
        """
        now = self._clock()
        self.arbiter.report_physical_state(reported_open, at=now)
        if reading is not None:
            self._ingest(reading, now)

        commanded = self.arbiter.current_command()
        logger.debug(
            "Device telemetry handled",
            extra={"reported_open": reported_open, "commanded_open": commanded},
        )
        return commanded

    def is_online(self, now: Optional[datetime] = None) -> bool:
        last_contact = self.arbiter.snapshot().last_device_contact_at
        if last_contact is None:
            return False
        return (now or self._clock()) - last_contact < self.timeout

    def _ingest(self, reading: DeviceReading, now: datetime) -> None:
        # The device measures a subset of fields; the rest carry over.
        def overlay(base: NormalizedReading) -> NormalizedReading:
            return replace(
                base,
                temperature_c=reading.temperature_c,
                european_aqi=reading.european_aqi if reading.european_aqi is not None else base.european_aqi,
                observed_at=now,
            )

        self.cache.merge(self.location, overlay)
        logger.debug("Device reading cached", extra={"location": format_location(self.location)})
