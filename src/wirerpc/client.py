"""JSON-RPC client.

Builds requests with unique ids, hands them to a transport and checks that
what comes back belongs to what was sent. Batch responses are matched to
their requests purely by id; the order in which the server returned them is
never trusted.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Any

from loguru import logger

from wirerpc.errors import (
    BatchDuplicateResponseIdError,
    EmptyBatchError,
    NonceMismatchError,
    VersionMismatchError,
    WrongBatchResponseIdError,
    WrongBatchResponseSizeError,
)
from wirerpc.hashable import HashableValue
from wirerpc.transport.aio import AsyncHttpTransport
from wirerpc.transport.base import AsyncTransport, Transport
from wirerpc.transport.http import SimpleHttpTransport
from wirerpc.types import Params, Request, Response

JSONRPC_VERSION = "2.0"


def validate_response(request: Request, response: Response) -> Response:
    """Check the version marker and that the response answers ``request``."""
    if response.jsonrpc is not None and response.jsonrpc != JSONRPC_VERSION:
        raise VersionMismatchError(response.jsonrpc)
    if HashableValue(response.id) != HashableValue(request.id):
        raise NonceMismatchError(request.id, response.id)
    return response


def correlate_batch(requests: Sequence[Request], responses: Sequence[Response]) -> list[Response | None]:
    """Order ``responses`` to line up with ``requests``.

    Returns one slot per request; a request the server did not answer gets
    ``None``. Any inconsistency fails the whole batch.
    """
    if len(responses) > len(requests):
        raise WrongBatchResponseSizeError(len(requests), len(responses))

    by_id: dict[HashableValue, Response] = {}
    for response in responses:
        key = HashableValue(response.id)
        if key in by_id:
            raise BatchDuplicateResponseIdError(response.id)
        by_id[key] = response

    results = [by_id.pop(HashableValue(request.id), None) for request in requests]

    if by_id:
        orphan = next(iter(by_id.values()))
        raise WrongBatchResponseIdError(orphan.id)
    return results


class _NonceCounter:
    """Monotonic id source shared by every request a client builds."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next = 1

    def take(self) -> int:
        with self._lock:
            nonce = self._next
            self._next += 1
        return nonce


class _ClientBase:
    def __init__(self) -> None:
        self._nonce = _NonceCounter()

    def build_request(self, method: str, params: Params | None = None) -> Request:
        """Create a request stamped with the next id."""
        return Request(method=method, params=params if params is not None else [], id=self._nonce.take())


class Client(_ClientBase):
    """Blocking JSON-RPC client.

    Example:
        >>> client = Client.simple_http("http://127.0.0.1:8332/", user="rpc", password="secret")
        >>> client.call("getblockcount")
    """

    def __init__(self, transport: Transport) -> None:
        super().__init__()
        self.transport = transport

    @classmethod
    def simple_http(
        cls,
        url: str,
        user: str | None = None,
        password: str | None = None,
        **kwargs: Any,
    ) -> Client:
        """Client over :class:`~wirerpc.transport.http.SimpleHttpTransport`."""
        return cls(SimpleHttpTransport(url, user=user, password=password, **kwargs))

    def __repr__(self) -> str:
        return f"wirerpc.Client({self.transport.describe_target()})"

    def send_request(self, request: Request) -> Response:
        logger.debug("rpc.client.send_request method={} id={}", request.method, request.id)
        return validate_response(request, self.transport.send_request(request))

    def send_batch(self, requests: Sequence[Request]) -> list[Response | None]:
        """Send ``requests`` as one batch.

        Returns:
            One entry per request, in request order; ``None`` where the
            server sent no response for that request.
        """
        if not requests:
            raise EmptyBatchError()
        logger.debug("rpc.client.send_batch size={}", len(requests))
        return correlate_batch(requests, self.transport.send_batch(requests))

    def call(self, method: str, params: Params | None = None, result_type: Any = None) -> Any:
        """Build, send and unwrap a single call."""
        return self.send_request(self.build_request(method, params)).get_result(result_type)


class AsyncClient(_ClientBase):
    """asyncio JSON-RPC client with the same rules as :class:`Client`."""

    def __init__(self, transport: AsyncTransport) -> None:
        super().__init__()
        self.transport = transport

    @classmethod
    def simple_http(
        cls,
        url: str,
        user: str | None = None,
        password: str | None = None,
        **kwargs: Any,
    ) -> AsyncClient:
        """Client over :class:`~wirerpc.transport.aio.AsyncHttpTransport`."""
        return cls(AsyncHttpTransport(url, user=user, password=password, **kwargs))

    def __repr__(self) -> str:
        return f"wirerpc.AsyncClient({self.transport.describe_target()})"

    async def send_request(self, request: Request) -> Response:
        logger.debug("rpc.client.send_request method={} id={}", request.method, request.id)
        return validate_response(request, await self.transport.send_request(request))

    async def send_batch(self, requests: Sequence[Request]) -> list[Response | None]:
        if not requests:
            raise EmptyBatchError()
        logger.debug("rpc.client.send_batch size={}", len(requests))
        return correlate_batch(requests, await self.transport.send_batch(requests))

    async def call(self, method: str, params: Params | None = None, result_type: Any = None) -> Any:
        response = await self.send_request(self.build_request(method, params))
        return response.get_result(result_type)
