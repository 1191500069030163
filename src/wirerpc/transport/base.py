"""Transport protocols.

A transport delivers requests to a server and hands back whatever responses
came back, in the order they arrived. Matching responses to requests is the
client's job; transports must not reorder, drop or retry.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from wirerpc.types import Request, Response


@runtime_checkable
class Transport(Protocol):
    """Blocking JSON-RPC transport."""

    def send_request(self, request: Request) -> Response:
        """Send one request and return its response."""
        ...

    def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        """Send several requests in one exchange and return the responses as received."""
        ...

    def describe_target(self) -> str:
        """Human-readable description of where requests go."""
        ...


@runtime_checkable
class AsyncTransport(Protocol):
    """asyncio JSON-RPC transport."""

    async def send_request(self, request: Request) -> Response:
        """Send one request and return its response."""
        ...

    async def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        """Send several requests in one exchange and return the responses as received."""
        ...

    def describe_target(self) -> str:
        """Human-readable description of where requests go."""
        ...
