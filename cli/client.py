from __future__ import annotations

from typing import Any, Dict, NoReturn, Optional

import httpx
import typer

from cli.config import CLIConfig
from services.sessions import sign


class ApiClient:
    """HTTP client for reading the status and pushing signed sensor updates."""

    def __init__(self, config: CLIConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def get_status(self) -> Dict[str, Any]:
        try:
            response = self._client.get("/")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def create_session(self, sensor: str) -> Dict[str, str]:
        try:
            response = self._client.post(f"/sensors/{sensor}/sessions")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        if not isinstance(payload, dict):
            _fail("Unexpected response payload when creating a session.")
        session_id = payload.get("session_id")
        if not isinstance(session_id, str) or not session_id or not _is_hex(payload.get("secret")):
            _fail("Unexpected response payload when creating a session.")
        return payload

    def update_sensor(self, sensor: str, value: str) -> None:
        """Open a session, sign ``value`` with its secret and submit the update."""
        session = self.create_session(sensor)
        body = {
            "value": value,
            "session_id": session["session_id"],
            "signature": sign(session["secret"], sensor, value),
        }
        try:
            response = self._client.put(f"/sensors/{sensor}", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> NoReturn:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("reason") or data.get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        _fail(message)


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _is_hex(value: object) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True
