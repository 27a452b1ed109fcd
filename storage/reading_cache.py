"""In-memory cache of the latest environmental reading per location."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional, Protocol

from models.readings import DEFAULT_READING, LocationKey, NormalizedReading, format_location
from services.errors import FetchError, UnavailableDataError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReadingProvider(Protocol):
    def fetch(self, key: LocationKey) -> NormalizedReading:
        ...


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """``partial`` entries were built on ``DEFAULT_READING`` rather than a provider reading."""

    key: LocationKey
    reading: NormalizedReading
    fetched_at: datetime
    partial: bool = False


@dataclass(frozen=True, slots=True)
class CacheLookup:
    """Result of a cache read; ``fallback`` marks data resting on the default reading."""

    key: LocationKey
    reading: NormalizedReading
    fetched_at: Optional[datetime]
    stale: bool
    fallback: bool = False


class ReadingCache:
    """Latest reading per location, replaced wholesale on every refresh.

    Reads never touch the network; only :meth:`refresh` calls the provider.
    """

    def __init__(self, ttl: timedelta, clock: Clock = utcnow) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[LocationKey, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: LocationKey) -> CacheLookup:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            raise UnavailableDataError(f"No reading cached for location {format_location(key)}.")
        age = self._clock() - entry.fetched_at
        return CacheLookup(
            key=key,
            reading=entry.reading,
            fetched_at=entry.fetched_at,
            stale=age >= self.ttl,
            fallback=entry.partial,
        )

    def get_or_default(self, key: LocationKey) -> CacheLookup:
        try:
            return self.get(key)
        except UnavailableDataError:
            return CacheLookup(
                key=key,
                reading=DEFAULT_READING,
                fetched_at=None,
                stale=True,
                fallback=True,
            )

    def peek(self, key: LocationKey) -> Optional[NormalizedReading]:
        with self._lock:
            entry = self._entries.get(key)
        return entry.reading if entry is not None else None

    def put(
        self,
        key: LocationKey,
        reading: NormalizedReading,
        fetched_at: Optional[datetime] = None,
    ) -> None:
        entry = CacheEntry(key=key, reading=reading, fetched_at=fetched_at or self._clock())
        with self._lock:
            self._entries[key] = entry

    def merge(
        self,
        key: LocationKey,
        update: Callable[[NormalizedReading], NormalizedReading],
    ) -> NormalizedReading:
        """Apply ``update`` to the current reading and store the result atomically.

        Carried-over fields keep their age: an entry backed by a provider
        reading keeps its ``fetched_at``. Without one, the result rests on
        ``DEFAULT_READING`` and is stored as partial.
        """
        with self._lock:
            current = self._entries.get(key)
            if current is None or current.partial:
                merged = update(current.reading if current is not None else DEFAULT_READING)
                entry = CacheEntry(key=key, reading=merged, fetched_at=self._clock(), partial=True)
            else:
                merged = update(current.reading)
                entry = CacheEntry(key=key, reading=merged, fetched_at=current.fetched_at)
            self._entries[key] = entry
        return merged

    def refresh(self, key: LocationKey, provider: ReadingProvider) -> Optional[NormalizedReading]:
        """Fetch a new reading for ``key``; on failure keep the previous entry."""
        try:
            reading = provider.fetch(key)
        except FetchError as exc:
            logger.warning(
                "Refresh failed, keeping previous reading",
                extra={
                    "location": format_location(key),
                    "reason": str(exc),
                    "retained": self.peek(key) is not None,
                },
            )
            return None
        self.put(key, reading)
        logger.debug("Reading refreshed", extra={"location": format_location(key)})
        return reading

    def keys(self) -> list[LocationKey]:
        with self._lock:
            return sorted(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
