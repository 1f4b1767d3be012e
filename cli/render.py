from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _describe_sensor(kind: str, sensor: Dict[str, Any]) -> str:
    label = sensor.get("name") or sensor.get("location") or kind
    unit = sensor.get("unit")
    value = sensor.get("value")
    return f"{label}: {value}{unit}" if unit else f"{label}: {value}"


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading(str(payload.get("space", "Unknown space")))
    state = payload.get("state") or {}
    is_open = state.get("open")
    echo_key_values(
        [
            ("url", payload.get("url")),
            ("open", "unknown" if is_open is None else ("yes" if is_open else "no")),
        ]
    )
    if state.get("message"):
        typer.echo(f"message: {state['message']}")

    typer.echo()
    echo_heading("Sensors")
    sensors = payload.get("sensors") or {}
    if not sensors:
        typer.echo("No sensor readings available.")
        return
    for kind, readings in sensors.items():
        typer.echo(f"{kind}:")
        for sensor in readings:
            typer.echo(f"  - {_describe_sensor(kind, sensor)}")
