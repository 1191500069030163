"""Raw TCP transport.

Writes the JSON body straight to a fresh connection and reads back exactly
one JSON value. There is no framing besides JSON itself, so exchanges must
be strictly request/response.
"""

from __future__ import annotations

import json
import re
import socket
from collections.abc import Sequence
from typing import Any

from loguru import logger

from wirerpc.errors import JsonError, SocketError, TransportTimeoutError
from wirerpc.types import Request, Response, decode_batch, decode_response, encode_batch, encode_request

MAX_RESPONSE_SIZE = 1 << 30
_READ_CHUNK = 64 * 1024
_STRUCTURAL = re.compile(rb'[\[\]{}"\\]')
_NON_SPACE = re.compile(rb"[^ \t\r\n]")


class ValueScanner:
    """Find where the first top-level JSON object or array ends.

    Chunks are fed as they arrive and each byte is looked at once. Only
    brackets, quotes and backslashes are tracked; validation is left to the
    decoder. A document that does not start with ``{`` or ``[`` is never
    reported complete and has to be read to EOF.
    """

    def __init__(self) -> None:
        self._offset = 0
        self._depth = 0
        self._in_string = False
        self._skip_to = 0
        self._container: bool | None = None

    def feed(self, chunk: bytes) -> int | None:
        """Return the offset just past the closing bracket once it has been seen."""
        base = self._offset
        self._offset += len(chunk)
        start = 0
        if self._container is None:
            first = _NON_SPACE.search(chunk)
            if first is None:
                return None
            self._container = chunk[first.start()] in b"[{"
            start = first.start()
        if not self._container:
            return None

        for match in _STRUCTURAL.finditer(chunk, start):
            pos = base + match.start()
            if pos < self._skip_to:
                continue
            char = match.group()
            if self._in_string:
                if char == b"\\":
                    self._skip_to = pos + 2
                elif char == b'"':
                    self._in_string = False
            elif char == b'"':
                self._in_string = True
            elif char in (b"[", b"{"):
                self._depth += 1
            elif char in (b"]", b"}"):
                self._depth -= 1
                if self._depth == 0:
                    return pos + 1
        return None


def _loads(data: bytes | bytearray) -> Any:
    try:
        return json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise JsonError("malformed JSON response") from e


def read_json_value(sock: socket.socket, max_size: int = MAX_RESPONSE_SIZE) -> Any:
    """Read from ``sock`` until one complete JSON value has arrived."""
    scanner = ValueScanner()
    buf = bytearray()
    while len(buf) < max_size:
        chunk = sock.recv(_READ_CHUNK)
        if not chunk:
            break
        buf += chunk
        end = scanner.feed(chunk)
        if end is not None:
            return _loads(buf[:end])

    if not buf.strip():
        raise TransportTimeoutError("connection closed without a response")
    return _loads(buf)


def exchange(sock: socket.socket, body: bytes, batch: bool) -> Any:
    """Send ``body`` and decode the single reply, mapping socket failures."""
    try:
        sock.sendall(body)
        value = read_json_value(sock)
    except TimeoutError as e:
        raise TransportTimeoutError() from e
    except OSError as e:
        raise SocketError(str(e)) from e
    return decode_batch(value, raw=True) if batch else decode_response(value, raw=True)


class TcpTransport:
    """Synchronous transport over a new TCP connection per exchange.

    Args:
        addr: ``(host, port)`` of the server.
        timeout: Optional connect/read/write timeout in seconds.
    """

    def __init__(self, addr: tuple[str, int], timeout: float | None = None) -> None:
        self.addr = addr
        self.timeout = timeout

    def describe_target(self) -> str:
        return f"{self.addr[0]}:{self.addr[1]}"

    def send_request(self, request: Request) -> Response:
        return self._request(encode_request(request), batch=False)

    def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        return self._request(encode_batch(list(requests)), batch=True)

    def _request(self, body: bytes, batch: bool) -> Any:
        logger.debug("rpc.tcp.connect addr={}", self.describe_target())
        try:
            sock = socket.create_connection(self.addr, timeout=self.timeout)
        except TimeoutError as e:
            raise TransportTimeoutError() from e
        except OSError as e:
            raise SocketError(f"couldn't connect to {self.describe_target()}: {e}") from e
        with sock:
            return exchange(sock, body, batch)
