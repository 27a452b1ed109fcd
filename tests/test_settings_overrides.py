from __future__ import annotations

from typing import Iterator

import pytest

from services.coordinator import build_default_coordinator
from settings import DEFAULT_WEATHER_URL, get_settings


@pytest.fixture(autouse=True)
def fresh_caches() -> Iterator[None]:
    get_settings.cache_clear()
    build_default_coordinator.cache_clear()
    yield
    build_default_coordinator.cache_clear()
    get_settings.cache_clear()


def test_defaults_without_environment(monkeypatch) -> None:
    for name in ("WINDOW_DEFAULT_LAT", "WINDOW_CACHE_TTL_SECONDS", "WINDOW_TEMPERATURE_HIGH_C"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.default_location == (45.18, 5.72)
    assert settings.cache_ttl_seconds == 600.0
    assert settings.decision_interval_seconds == 900.0
    assert settings.temperature_high_c is None
    assert settings.weather_base_url == DEFAULT_WEATHER_URL


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("WINDOW_DEFAULT_LAT", "48.8566")
    monkeypatch.setenv("WINDOW_DEFAULT_LON", "2.3522")
    monkeypatch.setenv("WINDOW_EXTRA_LOCATIONS", "43.6,1.44; bogus ;100,0")
    monkeypatch.setenv("WINDOW_DECISION_INTERVAL_SECONDS", "120")
    monkeypatch.setenv("WINDOW_POLLUTION_HIGH", "70")
    monkeypatch.setenv("WINDOW_TEMPERATURE_HIGH_C", "30")
    monkeypatch.setenv("WINDOW_BACKGROUND_TASKS", "off")

    coordinator = build_default_coordinator()
    try:
        assert coordinator.default_location == (48.86, 2.35)
        assert coordinator.tracked_locations() == [(48.86, 2.35), (43.6, 1.44)]
        assert coordinator.engine.interval.total_seconds() == 120
        assert coordinator.engine.thresholds.pollution_high == 70
        assert coordinator.engine.thresholds.temperature_high_c == 30.0
        assert coordinator.background_tasks is False
    finally:
        coordinator.shutdown()


@pytest.mark.parametrize("value", ["", "abc", "-5", "0"])
def test_invalid_durations_fall_back_to_defaults(monkeypatch, value) -> None:
    monkeypatch.setenv("WINDOW_CACHE_TTL_SECONDS", value)

    assert get_settings().cache_ttl_seconds == 600.0


def test_log_level_is_normalized(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", " debug ")

    assert get_settings().log_level == "DEBUG"
