from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_status


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Read the SpaceAPI status and push signed sensor updates.",
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
        help="Server base URL (defaults to SPACEAPI_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the current status document."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("update")
def update_command(
    ctx: typer.Context,
    sensor: str = typer.Argument(..., help="Data key of the sensor to update."),
    value: str = typer.Argument(..., help="New sensor value."),
) -> None:
    """Update a sensor value through a signed, single-use session."""
    state = _get_state(ctx)
    typer.echo(f"Updating {sensor} on {state.config.base_url} ...")
    state.client.update_sensor(sensor, value)
    typer.secho(f"Sensor {sensor} set to {value}.", fg=typer.colors.GREEN)
