import json

import httpx
import pytest

from wirerpc.client import AsyncClient, Client
from wirerpc.errors import HttpErrorCodeError, SocketError, TransportTimeoutError
from wirerpc.transport.httpx_adapter import AsyncHttpxTransport, HttpxTransport


def _handler(request: httpx.Request) -> httpx.Response:
    payload = json.loads(request.content)
    if isinstance(payload, list):
        body = [{"result": p["method"], "id": p["id"], "jsonrpc": "2.0"} for p in reversed(payload)]
    else:
        body = {"result": payload["method"], "id": payload["id"], "jsonrpc": "2.0"}
    assert request.headers["content-type"] == "application/json"
    return httpx.Response(200, json=body)


def test_call_through_httpx() -> None:
    transport = HttpxTransport("http://rpc.test/", client=httpx.Client(transport=httpx.MockTransport(_handler)))
    client = Client(transport)
    assert client.call("getinfo") == "getinfo"
    responses = client.send_batch([client.build_request("a"), client.build_request("b")])
    assert [r.get_result() if r else None for r in responses] == ["a", "b"]
    assert transport.describe_target() == "http://rpc.test/"


def test_basic_auth_is_forwarded() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("authorization", ""))
        return _handler(request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    transport = HttpxTransport("http://rpc.test/", user="rpc", password="pw", client=client)
    Client(transport).call("x")
    assert seen == ["Basic cnBjOnB3"]


def test_status_errors_and_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/down":
            raise httpx.ConnectError("refused", request=request)
        if request.url.path == "/slow":
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(503, text="maintenance")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(HttpErrorCodeError):
        Client(HttpxTransport("http://rpc.test/", client=client)).call("x")
    with pytest.raises(SocketError):
        Client(HttpxTransport("http://rpc.test/down", client=client)).call("x")
    with pytest.raises(TransportTimeoutError):
        Client(HttpxTransport("http://rpc.test/slow", client=client)).call("x")


@pytest.mark.asyncio
async def test_async_call_through_httpx() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    transport = AsyncHttpxTransport("http://rpc.test/", client=client)
    assert await AsyncClient(transport).call("hello") == "hello"
    await transport.aclose()
