from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

import pytest
from typer.testing import CliRunner

from wirerpc import cli
from wirerpc.client import Client
from wirerpc.settings import ClientSettings
from wirerpc.types import Request, Response, RpcError

runner = CliRunner()


class EchoTransport:
    """Returns the params back as the result; method "fail" yields an RPC error."""

    def __init__(self) -> None:
        self.requests: list[Request] = []

    def describe_target(self) -> str:
        return "echo"

    def _answer(self, request: Request) -> Response:
        self.requests.append(request)
        if request.method == "fail":
            return Response(error=RpcError(code=-5, message="no such thing"), id=request.id, jsonrpc="2.0")
        return Response(result=request.params, id=request.id, jsonrpc="2.0")

    def send_request(self, request: Request) -> Response:
        return self._answer(request)

    def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        answers = [self._answer(r) for r in requests if r.method != "drop"]
        return list(reversed(answers))


@pytest.fixture
def transport(monkeypatch: pytest.MonkeyPatch) -> EchoTransport:
    echo = EchoTransport()
    seen: list[ClientSettings] = []

    def fake_build_client(settings: ClientSettings) -> Client:
        seen.append(settings)
        return Client(echo)

    monkeypatch.setattr(cli, "build_client", fake_build_client)
    echo.settings = seen  # type: ignore[attr-defined]
    return echo


def test_call_positional_params(transport: EchoTransport) -> None:
    result = runner.invoke(cli.app, ["call", "getblockhash", "0", "true", "text"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [0, True, "text"]


def test_call_named_params(transport: EchoTransport) -> None:
    result = runner.invoke(cli.app, ["call", "send", "--named", "to=abc", "amount=1.5"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"to": "abc", "amount": 1.5}


def test_call_passes_options_to_settings(transport: EchoTransport) -> None:
    result = runner.invoke(cli.app, ["call", "ping", "--url", "http://h:1/", "-u", "me", "--timeout", "3"])
    assert result.exit_code == 0, result.output
    (settings,) = transport.settings  # type: ignore[attr-defined]
    assert (settings.url, settings.user, settings.timeout) == ("http://h:1/", "me", 3.0)


def test_call_rpc_error_exits_nonzero(transport: EchoTransport) -> None:
    result = runner.invoke(cli.app, ["call", "fail"])
    assert result.exit_code == 1
    assert "no such thing" in result.output


def test_batch_from_file(transport: EchoTransport, tmp_path: Path) -> None:
    batch_file = tmp_path / "batch.json"
    batch_file.write_text(
        json.dumps([{"method": "a", "params": [1]}, {"method": "drop"}, {"method": "fail"}]),
        encoding="utf-8",
    )
    result = runner.invoke(cli.app, ["batch", str(batch_file)])
    assert result.exit_code == 0, result.output
    outcomes = json.loads(result.stdout)
    assert outcomes[0] == {"method": "a", "result": [1]}
    assert outcomes[1] == {"method": "drop", "missing": True}
    assert outcomes[2]["error"]["code"] == -5


def test_batch_from_stdin(transport: EchoTransport) -> None:
    result = runner.invoke(cli.app, ["batch", "-"], input='[{"method": "x", "params": {"k": 1}}]')
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == [{"method": "x", "result": {"k": 1}}]


def test_batch_rejects_bad_file(transport: EchoTransport, tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text('{"method": "x"}', encoding="utf-8")
    result = runner.invoke(cli.app, ["batch", str(bad)])
    assert result.exit_code != 0


def test_empty_batch_fails(transport: EchoTransport) -> None:
    result = runner.invoke(cli.app, ["batch", "-"], input="[]")
    assert result.exit_code == 1
    assert "empty" in result.output


def test_parse_param() -> None:
    assert cli.parse_param("12") == 12
    assert cli.parse_param('{"a": null}') == {"a": None}
    assert cli.parse_param("plain") == "plain"
