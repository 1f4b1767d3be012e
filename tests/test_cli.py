from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any, Dict, List

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from services.sessions import canonical_message


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.updates: List[tuple[str, str]] = []
        self.status_payload: Dict[str, Any] = {
            "space": "ourspace",
            "url": "https://example.com/",
            "state": {"open": True, "message": "2 people here right now"},
            "sensors": {
                "people_now_present": [{"value": 2, "location": "Hackerspace"}],
                "temperature": [{"value": 21.5, "unit": "°C", "location": "Room"}],
            },
        }
        self.closed = False

    def get_status(self) -> Dict[str, Any]:
        return self.status_payload

    def update_sensor(self, sensor: str, value: str) -> None:
        self.updates.append((sensor, value))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def stub(monkeypatch) -> Dict[str, StubClient]:
    created: Dict[str, StubClient] = {}

    def factory(config):
        client = StubClient(config)
        created["client"] = client
        return client

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return created


def test_status_command_renders_summary(runner: CliRunner, stub) -> None:
    result = runner.invoke(app, ["--base-url", "http://api.test/", "status"])

    assert result.exit_code == 0, result.output
    assert "ourspace" in result.output
    assert "open: yes" in result.output
    assert "2 people here right now" in result.output
    assert "Room: 21.5°C" in result.output
    client = stub["client"]
    assert client.config.base_url == "http://api.test"
    assert client.closed is True


def test_status_command_without_sensors(runner: CliRunner, stub, monkeypatch) -> None:
    monkeypatch.setattr(StubClient, "get_status", lambda self: {"space": "quiet"})

    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0, result.output
    assert "open: unknown" in result.output
    assert "No sensor readings available." in result.output


def test_update_command(runner: CliRunner, stub) -> None:
    result = runner.invoke(app, ["update", "temp_room", "21.5"])

    assert result.exit_code == 0, result.output
    assert stub["client"].updates == [("temp_room", "21.5")]
    assert "Sensor temp_room set to 21.5." in result.output


def test_load_config_uses_environment(monkeypatch) -> None:
    monkeypatch.setenv("SPACEAPI_BASE_URL", "http://space.example/")
    monkeypatch.setenv("SPACEAPI_CLIENT_TIMEOUT", "abc")

    config = load_config()

    assert config.base_url == "http://space.example"
    assert config.timeout == 10.0


def _mock_server(
    requests: List[httpx.Request], put_status: int = 204, secret: str = "11" * 32
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "POST" and request.url.path == "/sensors/people/sessions":
            return httpx.Response(201, json={"session_id": "sid", "secret": secret})
        if request.method == "PUT" and request.url.path == "/sensors/people":
            if put_status != 204:
                return httpx.Response(
                    put_status, json={"status": "error", "reason": "Invalid or expired session"}
                )
            return httpx.Response(204)
        return httpx.Response(404, json={"detail": "Not Found"})

    return httpx.MockTransport(handler)


def test_api_client_signs_update() -> None:
    requests: List[httpx.Request] = []
    client = ApiClient(CLIConfig(base_url="http://api.test"), transport=_mock_server(requests))

    client.update_sensor("people", "3")
    client.close()

    body = json.loads(requests[1].content)
    expected = hmac.new(
        bytes.fromhex("11" * 32), canonical_message("people", "3"), hashlib.sha256
    ).hexdigest()
    assert body == {"value": "3", "session_id": "sid", "signature": expected}


def test_api_client_reports_error_reason(capsys) -> None:
    requests: List[httpx.Request] = []
    client = ApiClient(
        CLIConfig(base_url="http://api.test"), transport=_mock_server(requests, put_status=401)
    )

    with pytest.raises(typer.Exit):
        client.update_sensor("people", "3")

    assert "Invalid or expired session" in capsys.readouterr().err


@pytest.mark.parametrize("secret", ["not-hex", "", "abc"])
def test_api_client_rejects_malformed_session_secret(secret: str, capsys) -> None:
    requests: List[httpx.Request] = []
    client = ApiClient(
        CLIConfig(base_url="http://api.test"), transport=_mock_server(requests, secret=secret)
    )

    with pytest.raises(typer.Exit) as excinfo:
        client.update_sensor("people", "3")

    assert excinfo.value.exit_code == 1
    assert "Unexpected response payload" in capsys.readouterr().err
    assert [request.method for request in requests] == ["POST"]
