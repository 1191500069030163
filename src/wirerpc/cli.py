"""Typer CLI entrypoints."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from loguru import logger
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.markup import escape

from wirerpc.errors import RpcClientError
from wirerpc.logging_utils import configure_logging
from wirerpc.settings import ClientSettings, build_client, load_settings
from wirerpc.types import Params

app = typer.Typer(name="wirerpc", help="Minimal JSON-RPC 2.0 client", add_completion=False)
console = Console()
err_console = Console(stderr=True)

UrlOption = Annotated[str | None, typer.Option("--url", help="Server URL, e.g. http://127.0.0.1:8332/")]
UserOption = Annotated[str | None, typer.Option("--user", "-u")]
PasswordOption = Annotated[str | None, typer.Option("--password", "-p")]
TimeoutOption = Annotated[float | None, typer.Option("--timeout", help="Seconds per exchange")]
TransportOption = Annotated[str | None, typer.Option("--transport", "-t", help="http, tcp, uds or httpx")]
SocketOption = Annotated[str | None, typer.Option("--socket-path", help="Unix socket for the uds transport")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Log wire activity")]


class BatchEntry(BaseModel):
    method: str
    params: Params = []


def parse_param(raw: str) -> Any:
    """Interpret a command-line argument as JSON, falling back to a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def parse_params(values: list[str], named: bool) -> Params:
    if not named:
        return [parse_param(v) for v in values]
    params: dict[str, Any] = {}
    for value in values:
        key, sep, raw = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {value!r}")
        params[key] = parse_param(raw)
    return params


def _settings(
    url: str | None,
    user: str | None,
    password: str | None,
    timeout: float | None,
    transport: str | None,
    socket_path: str | None,
) -> ClientSettings:
    return load_settings(
        url=url,
        user=user,
        password=password,
        timeout=timeout,
        transport=transport,
        socket_path=socket_path,
    )


def _fail(error: Exception) -> NoReturn:
    err_console.print(f"[red]error:[/red] {escape(str(error))}", highlight=False)
    raise typer.Exit(code=1)


@app.command()
def call(
    method: Annotated[str, typer.Argument(help="Method name")],
    params: Annotated[list[str] | None, typer.Argument(help="Parameters, each parsed as JSON")] = None,
    named: Annotated[bool, typer.Option("--named", "-n", help="Parameters are key=value pairs")] = False,
    url: UrlOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    timeout: TimeoutOption = None,
    transport: TransportOption = None,
    socket_path: SocketOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Call one method and print its result."""
    configure_logging(verbose=verbose)
    try:
        client = build_client(_settings(url, user, password, timeout, transport, socket_path))
        logger.info("cli.call method={} target={}", method, client.transport.describe_target())
        result = client.call(method, parse_params(params or [], named))
    except (RpcClientError, ValueError) as e:
        _fail(e)
    console.print_json(data=result)


@app.command()
def batch(
    file: Annotated[Path, typer.Argument(help='JSON array of {"method", "params"} objects; "-" for stdin')],
    url: UrlOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    timeout: TimeoutOption = None,
    transport: TransportOption = None,
    socket_path: SocketOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Send several calls as one batch and print one outcome per call."""
    configure_logging(verbose=verbose)
    raw = sys.stdin.read() if str(file) == "-" else file.read_text(encoding="utf-8")
    try:
        entries = [BatchEntry.model_validate(e) for e in json.loads(raw)]
    except (json.JSONDecodeError, TypeError, ValidationError) as e:
        raise typer.BadParameter(f"invalid batch file: {e}") from e

    try:
        client = build_client(_settings(url, user, password, timeout, transport, socket_path))
        requests = [client.build_request(e.method, e.params) for e in entries]
        responses = client.send_batch(requests)
    except (RpcClientError, ValueError) as e:
        _fail(e)

    outcomes: list[dict[str, Any]] = []
    for request, response in zip(requests, responses, strict=True):
        if response is None:
            outcomes.append({"method": request.method, "missing": True})
        elif response.error is not None:
            outcomes.append({"method": request.method, "error": response.error.model_dump()})
        else:
            outcomes.append({"method": request.method, "result": response.result})
    console.print_json(data=outcomes)


def main() -> None:
    app()
