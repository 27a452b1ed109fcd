from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _position(value: Any) -> str:
    if value is None:
        return "unknown"
    return "open" if value else "closed"


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Window Status")
    echo_key_values(
        [
            ("commanded", _position(payload.get("isOpen"))),
            ("reported", _position(payload.get("reportedOpen"))),
            ("mode", payload.get("mode")),
            ("auto_mode", payload.get("autoMode")),
            ("device_online", payload.get("deviceOnline")),
            ("last_updated", payload.get("lastUpdated")),
            ("last_device_contact", payload.get("lastDeviceContact")),
        ]
    )
    if payload.get("reportedOpen") is not None and payload.get("reportedOpen") != payload.get("isOpen"):
        typer.secho("Device has not applied the latest command yet.", fg=typer.colors.YELLOW)


def render_weather(payload: Dict[str, Any]) -> None:
    location = payload.get("location") or {}
    echo_heading(f"Conditions at {location.get('lat')},{location.get('lon')}")
    for label, key in (
        ("temperature", "temperature"),
        ("pollution", "pollution"),
        ("wind_speed", "windSpeed"),
        ("sunlight", "sunlight"),
    ):
        measurement = payload.get(key) or {}
        typer.echo(
            f"{label}: {measurement.get('value')} {measurement.get('unit', '')} ({measurement.get('status')})"
        )
    typer.echo()
    echo_key_values(
        [
            ("observed_at", payload.get("observedAt")),
            ("fetched_at", payload.get("fetchedAt")),
        ]
    )
    if payload.get("stale"):
        typer.secho("Reading is stale.", fg=typer.colors.YELLOW)
