from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_status, render_weather


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Operate the window coordinator: inspect status, force a position or resume automation.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Coordinator base URL (defaults to API_BASE_URL env or http://localhost:3001).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the commanded and reported window position."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("open")
def open_command(ctx: typer.Context) -> None:
    """Force the window open until automation is resumed."""
    state = _get_state(ctx)
    payload = state.client.send_control(action="open")
    typer.secho("Window forced open.", fg=typer.colors.GREEN)
    render_status(payload)


@app.command("close")
def close_command(ctx: typer.Context) -> None:
    """Force the window closed until automation is resumed."""
    state = _get_state(ctx)
    payload = state.client.send_control(action="close")
    typer.secho("Window forced closed.", fg=typer.colors.GREEN)
    render_status(payload)


@app.command("auto")
def auto_command(ctx: typer.Context) -> None:
    """Hand control back to the weather-driven automation."""
    state = _get_state(ctx)
    payload = state.client.send_control(auto_mode=True)
    typer.secho("Automatic mode enabled.", fg=typer.colors.GREEN)
    render_status(payload)


@app.command("hold")
def hold_command(ctx: typer.Context) -> None:
    """Leave automatic mode and keep the window where it is."""
    state = _get_state(ctx)
    payload = state.client.send_control(auto_mode=False)
    typer.secho("Holding current position.", fg=typer.colors.GREEN)
    render_status(payload)


@app.command("weather")
def weather_command(
    ctx: typer.Context,
    lat: Optional[float] = typer.Option(None, "--lat", help="Latitude; defaults to the configured location."),
    lon: Optional[float] = typer.Option(None, "--lon", help="Longitude; defaults to the configured location."),
) -> None:
    """Show the cached environmental reading."""
    if (lat is None) != (lon is None):
        raise typer.BadParameter("Pass both --lat and --lon, or neither.")
    state = _get_state(ctx)
    render_weather(state.client.get_weather(lat=lat, lon=lon))
