"""Transports delegating to :mod:`httpx`.

For setups that already depend on a full HTTP client (TLS, pooling,
redirects). Body decoding follows the same status rules as the built-in
transport.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from wirerpc.errors import SocketError, TransportError, TransportTimeoutError
from wirerpc.transport.http import DEFAULT_PORT, DEFAULT_TIMEOUT, decode_body
from wirerpc.types import Request, Response, encode_batch, encode_request

_HEADERS = {"Content-Type": "application/json"}


def _translate(url: str, error: httpx.HTTPError) -> TransportError:
    if isinstance(error, httpx.TimeoutException):
        return TransportTimeoutError()
    if isinstance(error, httpx.TransportError):
        return SocketError(f"couldn't talk to {url}: {error}")
    return TransportError(f"httpx request to {url} failed: {error}")


class HttpxTransport:
    """Blocking transport backed by :class:`httpx.Client`."""

    def __init__(
        self,
        url: str = f"http://127.0.0.1:{DEFAULT_PORT}/",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user: str | None = None,
        password: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._auth = httpx.BasicAuth(user, password or "") if user is not None else httpx.USE_CLIENT_DEFAULT
        self._client = client or httpx.Client(timeout=timeout)

    def describe_target(self) -> str:
        return self.url

    def send_request(self, request: Request) -> Response:
        return self._request(encode_request(request), batch=False)

    def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        return self._request(encode_batch(list(requests)), batch=True)

    def close(self) -> None:
        self._client.close()

    def _request(self, body: bytes, batch: bool) -> Any:
        try:
            resp = self._client.post(self.url, content=body, headers=_HEADERS, auth=self._auth)
        except httpx.HTTPError as e:
            raise _translate(self.url, e) from e
        return decode_body(resp.content, resp.status_code, batch)


class AsyncHttpxTransport:
    """asyncio transport backed by :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        url: str = f"http://127.0.0.1:{DEFAULT_PORT}/",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user: str | None = None,
        password: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._auth = httpx.BasicAuth(user, password or "") if user is not None else httpx.USE_CLIENT_DEFAULT
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def describe_target(self) -> str:
        return self.url

    async def send_request(self, request: Request) -> Response:
        return await self._request(encode_request(request), batch=False)

    async def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        return await self._request(encode_batch(list(requests)), batch=True)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, body: bytes, batch: bool) -> Any:
        try:
            resp = await self._client.post(self.url, content=body, headers=_HEADERS, auth=self._auth)
        except httpx.HTTPError as e:
            raise _translate(self.url, e) from e
        return decode_body(resp.content, resp.status_code, batch)
