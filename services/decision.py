"""Automatic open/close decisions from environmental readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from models.readings import LocationKey, NormalizedReading, format_location
from settings import Settings
from storage.reading_cache import ReadingCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecisionThresholds:
    pollution_high: int = 50
    pollution_low: int = 40
    wind_high_kph: float = 40.0
    wind_moderate_kph: float = 20.0
    sunlight_min_pct: float = 60.0
    temperature_high_c: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "DecisionThresholds":
        return cls(
            pollution_high=settings.pollution_high,
            pollution_low=settings.pollution_low,
            wind_high_kph=settings.wind_high_kph,
            wind_moderate_kph=settings.wind_moderate_kph,
            sunlight_min_pct=settings.sunlight_min_pct,
            temperature_high_c=settings.temperature_high_c,
        )


@dataclass(frozen=True)
class Decision:
    """An automatic recommendation and the reading it was taken from."""

    open: bool
    reading: NormalizedReading
    decided_at: datetime
    stale: bool = False
    fallback: bool = False


def decide(reading: NormalizedReading, thresholds: DecisionThresholds = DecisionThresholds()) -> bool:
    """Return whether the window should be open for ``reading``.

    Closing gates win over the opening gate, and any condition the reading
    cannot vouch for (unknown AQI or sunlight) keeps the window closed.
    """
    aqi = reading.european_aqi
    if aqi is not None and aqi > thresholds.pollution_high:
        return False
    if reading.wind_kph > thresholds.wind_high_kph:
        return False
    if thresholds.temperature_high_c is not None and reading.temperature_c > thresholds.temperature_high_c:
        return False

    sunny = reading.sunlight_pct is not None and reading.sunlight_pct > thresholds.sunlight_min_pct
    clean = aqi is not None and aqi < thresholds.pollution_low
    calm = reading.wind_kph < thresholds.wind_moderate_kph
    return sunny and clean and calm


class DecisionEngine:
    """Gates automatic decisions to at most one per decision interval."""

    def __init__(
        self,
        cache: ReadingCache,
        location: LocationKey,
        interval: timedelta,
        thresholds: DecisionThresholds = DecisionThresholds(),
    ) -> None:
        self.cache = cache
        self.location = location
        self.interval = interval
        self.thresholds = thresholds

    def is_due(self, now: datetime, last_decision_at: Optional[datetime]) -> bool:
        return last_decision_at is None or now - last_decision_at >= self.interval

    def maybe_decide(self, now: datetime, last_decision_at: Optional[datetime]) -> Optional[Decision]:
        if not self.is_due(now, last_decision_at):
            return None

        lookup = self.cache.get_or_default(self.location)
        if lookup.fallback:
            logger.warning(
                "No reading available, deciding from the default reading",
                extra={"location": format_location(self.location), "fallback": True},
            )
        elif lookup.stale:
            logger.info(
                "Deciding from a stale reading",
                extra={"location": format_location(self.location), "stale": True},
            )

        return Decision(
            open=decide(lookup.reading, self.thresholds),
            reading=lookup.reading,
            decided_at=now,
            stale=lookup.stale,
            fallback=lookup.fallback,
        )
