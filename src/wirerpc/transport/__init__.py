"""Transports for the JSON-RPC client."""

from wirerpc.transport.aio import AsyncHttpTransport
from wirerpc.transport.base import AsyncTransport, Transport
from wirerpc.transport.http import DEFAULT_PORT, SimpleHttpTransport, parse_url
from wirerpc.transport.httpx_adapter import AsyncHttpxTransport, HttpxTransport
from wirerpc.transport.tcp import TcpTransport
from wirerpc.transport.uds import UdsTransport

__all__ = [
    "DEFAULT_PORT",
    "AsyncHttpTransport",
    "AsyncHttpxTransport",
    "AsyncTransport",
    "HttpxTransport",
    "SimpleHttpTransport",
    "TcpTransport",
    "Transport",
    "UdsTransport",
    "parse_url",
]
