"""Minimal HTTP/1.1 transport.

Implements just enough of HTTP/1.1 to talk to a JSON-RPC daemon: one POST
per exchange over a single cached connection, ``Content-Length`` framing in
both directions, no chunked encoding and no TLS. The parsing helpers in this
module are shared with :mod:`wirerpc.transport.aio`.
"""

from __future__ import annotations

import base64
import socket
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from wirerpc.errors import (
    HttpErrorCodeError,
    HttpResponseBadContentLengthError,
    HttpResponseBadHelloError,
    HttpResponseBadStatusError,
    HttpResponseContentLengthTooLargeError,
    HttpResponseIncompleteHeadersError,
    HttpResponseLineTooLongError,
    HttpResponseNonAsciiHelloError,
    HttpResponseTooShortError,
    IncompleteResponseError,
    InvalidUrlError,
    JsonError,
    SocketError,
    TransportError,
    TransportTimeoutError,
)
from wirerpc.transport import socks
from wirerpc.types import Request, Response, decode_batch, decode_response, encode_batch, encode_request

# Default RPC port of bitcoind, the server this transport was written against.
DEFAULT_PORT = 8332
DEFAULT_TIMEOUT = 15.0
# Absolute cap on a response body.
FINAL_RESP_ALLOC = 1 << 30
MAX_LINE_LENGTH = 64 * 1024
STATUS_PREFIX = "HTTP/1.1 "
STATUS_LINE_MIN = 12

_SCHEME_PORTS = {"http": 80, "https": 443}
_READ_CHUNK = 64 * 1024


@dataclass(frozen=True)
class ParsedUrl:
    """Host, port and path extracted from a transport URL."""

    host: str
    port: int
    path: str


def parse_url(url: str, default_port: int = DEFAULT_PORT) -> ParsedUrl:
    """Split ``[scheme://][user:pass@]host[:port][/path]``.

    Credentials embedded in the URL are dropped; authentication is configured
    separately.
    """
    rest = url
    port = default_port
    scheme, sep, after = url.partition("://")
    if sep:
        if scheme not in _SCHEME_PORTS:
            raise InvalidUrlError(url, "scheme must be http or https")
        port = _SCHEME_PORTS[scheme]
        rest = after

    authority, slash, path = rest.partition("/")
    path = "/" + path if slash else "/"

    _, at, hostport = authority.partition("@")
    if not at:
        hostport = authority

    host, colon, port_str = hostport.partition(":")
    if colon:
        if ":" in port_str:
            raise InvalidUrlError(url, "unexpected extra colon")
        if not port_str.isdigit() or not port_str.isascii() or int(port_str) > 0xFFFF:
            raise InvalidUrlError(url, "invalid port")
        port = int(port_str)
    if not host:
        raise InvalidUrlError(url, "missing host")
    return ParsedUrl(host=host, port=port, path=path)


def resolve(host: str, port: int) -> tuple[str, int]:
    """Resolve ``host`` to the first TCP socket address the system offers."""
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    except OSError as e:
        raise SocketError(f"couldn't resolve {host}:{port}: {e}") from e
    if not infos:
        raise InvalidUrlError(f"{host}:{port}", "host resolved to no addresses")
    sockaddr = infos[0][4]
    return str(sockaddr[0]), int(sockaddr[1])


def basic_auth(user: str, password: str | None = None) -> str:
    """Precompute the ``Authorization`` header value for basic auth."""
    credentials = f"{user}:{password or ''}".encode()
    return "Basic " + base64.b64encode(credentials).decode("ascii")


def frame_request(path: str, body: bytes, authorization: str | None = None) -> bytes:
    """Build the full HTTP request for a serialized JSON body."""
    head = [
        f"POST {path} HTTP/1.1\r\n",
        "Content-Type: application/json\r\n",
        f"Content-Length: {len(body)}\r\n",
    ]
    if authorization is not None:
        head.append(f"Authorization: {authorization}\r\n")
    head.append("\r\n")
    return "".join(head).encode("latin-1") + body


def check_line(line: bytes) -> bytes:
    if len(line) > MAX_LINE_LENGTH:
        raise HttpResponseLineTooLongError(MAX_LINE_LENGTH)
    return line


def parse_status_line(line: bytes) -> int:
    """Validate ``HTTP/1.1 NNN ...`` and return the status code."""
    if len(line) < STATUS_LINE_MIN:
        raise HttpResponseTooShortError(len(line), STATUS_LINE_MIN)
    hello = line[:STATUS_LINE_MIN]
    if not hello.isascii():
        raise HttpResponseNonAsciiHelloError(hello)
    text = hello.decode("ascii")
    if not text.startswith(STATUS_PREFIX):
        raise HttpResponseBadHelloError(text[: len(STATUS_PREFIX)], STATUS_PREFIX)
    status = text[len(STATUS_PREFIX) : STATUS_LINE_MIN]
    if not status.isdigit():
        raise HttpResponseBadStatusError(status)
    return int(status)


def is_header_end(line: bytes) -> bool:
    return line in (b"\r\n", b"\n")


def parse_content_length(line: bytes) -> int | None:
    """Return the value of a ``Content-Length`` header line, ``None`` for any other header."""
    name, sep, value = line.partition(b":")
    if not sep or name.strip().lower() != b"content-length":
        return None
    text = value.strip().decode("latin-1")
    if not text.isascii() or not text.isdigit():
        raise HttpResponseBadContentLengthError(text)
    return int(text)


def body_limit(content_length: int | None, max_content_length: int) -> int:
    """Number of body bytes to read."""
    if content_length is None:
        return max_content_length
    if content_length > max_content_length:
        raise HttpResponseContentLengthTooLargeError(content_length, max_content_length)
    return content_length


def decode_body(body: bytes, status: int, batch: bool) -> Any:
    """Decode the body; a non-200 status wins over a parse failure."""
    try:
        return decode_batch(body) if batch else decode_response(body)
    except JsonError as e:
        if status != 200:
            raise HttpErrorCodeError(status) from e
        raise


class _Connection:
    """A connected socket whose every blocking call is bounded by a deadline.

    Received bytes go through our own buffer so that the deadline is
    re-armed before each ``recv``, however slowly the peer trickles data.
    """

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._buf = bytearray()

    def _arm(self, deadline: float) -> None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TransportTimeoutError()
        self._sock.settimeout(remaining)

    def _fill(self, deadline: float) -> bool:
        self._arm(deadline)
        chunk = self._sock.recv(_READ_CHUNK)
        if not chunk:
            return False
        self._buf += chunk
        return True

    def write(self, data: bytes, deadline: float) -> None:
        self._arm(deadline)
        self._sock.sendall(data)

    def readline(self, deadline: float) -> bytes:
        """Read through the next ``\\n``; at EOF, return whatever is left."""
        searched = 0
        while True:
            end = self._buf.find(b"\n", searched)
            if end >= 0:
                line = bytes(self._buf[: end + 1])
                del self._buf[: end + 1]
                return check_line(line)
            if len(self._buf) > MAX_LINE_LENGTH:
                raise HttpResponseLineTooLongError(MAX_LINE_LENGTH)
            searched = len(self._buf)
            if not self._fill(deadline):
                line = bytes(self._buf)
                self._buf.clear()
                return check_line(line)

    def read(self, n: int, deadline: float) -> bytes:
        """Read up to ``n`` bytes, stopping early only at EOF."""
        while len(self._buf) < n:
            if not self._fill(deadline):
                break
        data = bytes(self._buf[:n])
        del self._buf[:n]
        return data

    def discard_buffered(self) -> int:
        """Drop bytes already received past the current response."""
        n = len(self._buf)
        self._buf.clear()
        return n

    def close(self) -> None:
        self._sock.close()


class SimpleHttpTransport:
    """Blocking HTTP/1.1 transport with one cached connection.

    Exchanges are serialized by a lock. Any failure drops the cached
    connection so the next call starts from a fresh one.

    Args:
        url: ``[http[s]://][user:pass@]host[:port][/path]``.
        timeout: Seconds allowed for one whole exchange, connect included.
        user: Basic auth user name.
        password: Basic auth password.
        proxy: SOCKS5 proxy ``host[:port]``.
        proxy_auth: ``(user, password)`` for the proxy.
        max_content_length: Cap on the response body size.
        unauthorized_has_body: Read and decode the body of a 401 response
            instead of failing straight away.
    """

    def __init__(
        self,
        url: str = f"http://127.0.0.1:{DEFAULT_PORT}/",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user: str | None = None,
        password: str | None = None,
        proxy: str | None = None,
        proxy_auth: socks.ProxyAuth | None = None,
        max_content_length: int = FINAL_RESP_ALLOC,
        unauthorized_has_body: bool = False,
    ) -> None:
        parsed = parse_url(url)
        self._host = parsed.host
        self._port = parsed.port
        self._path = parsed.path
        self._addr = resolve(parsed.host, parsed.port)
        self._proxy_addr = socks.parse_proxy_addr(proxy) if proxy else None
        self._proxy_auth = proxy_auth
        self.timeout = timeout
        self._basic_auth = basic_auth(user, password) if user is not None else None
        self.max_content_length = max_content_length
        self.unauthorized_has_body = unauthorized_has_body
        self._lock = threading.Lock()
        self._conn: _Connection | None = None

    @property
    def addr(self) -> tuple[str, int]:
        return self._addr

    @property
    def path(self) -> str:
        return self._path

    def describe_target(self) -> str:
        return f"http://{self._host}:{self._port}{self._path}"

    def send_request(self, request: Request) -> Response:
        return self._request(encode_request(request), batch=False)

    def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        return self._request(encode_batch(list(requests)), batch=True)

    def close(self) -> None:
        with self._lock:
            self._discard()

    def _discard(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            try:
                conn.close()
            except OSError as e:
                logger.debug("rpc.http.close_failed target={} error={}", self.describe_target(), e)

    def _connect(self, deadline: float) -> _Connection:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TransportTimeoutError()
        if self._proxy_addr is None:
            logger.debug("rpc.http.connect addr={}:{}", *self._addr)
            sock = socket.create_connection(self._addr, timeout=remaining)
        else:
            logger.debug("rpc.http.connect addr={}:{} proxy={}:{}", *self._addr, *self._proxy_addr)
            sock = socket.create_connection(self._proxy_addr, timeout=remaining)
            try:
                socks.handshake(sock, self._addr[0], self._addr[1], self._proxy_auth)
            except BaseException:
                sock.close()
                raise
        return _Connection(sock)

    def _request(self, body: bytes, batch: bool) -> Any:
        with self._lock:
            deadline = time.monotonic() + self.timeout
            try:
                if self._conn is None:
                    self._conn = self._connect(deadline)
                result, reusable = self._exchange(self._conn, body, batch, deadline)
            except TimeoutError as e:
                self._discard()
                raise TransportTimeoutError() from e
            except TransportError as e:
                logger.warning("rpc.http.exchange_failed target={} error={}", self.describe_target(), e)
                self._discard()
                raise
            except OSError as e:
                self._discard()
                raise SocketError(f"couldn't talk to {self.describe_target()}: {e}") from e
            except BaseException:
                self._discard()
                raise
            if not reusable:
                self._discard()
            return result

    def _exchange(self, conn: _Connection, body: bytes, batch: bool, deadline: float) -> tuple[Any, bool]:
        conn.write(frame_request(self._path, body, self._basic_auth), deadline)

        line = conn.readline(deadline)
        while is_header_end(line):
            # Stray CRLF the server sent after the previous body.
            line = conn.readline(deadline)
        status = parse_status_line(line)
        content_length: int | None = None
        while True:
            line = conn.readline(deadline)
            if not line:
                raise HttpResponseIncompleteHeadersError()
            if is_header_end(line):
                break
            value = parse_content_length(line)
            if value is not None:
                content_length = value

        if status == 401 and not self.unauthorized_has_body:
            raise HttpErrorCodeError(status)

        limit = body_limit(content_length, self.max_content_length)
        payload = conn.read(limit, deadline)
        if content_length is not None and len(payload) < content_length:
            raise IncompleteResponseError(content_length, len(payload))

        logger.debug("rpc.http.response status={} bytes={}", status, len(payload))
        result = decode_body(payload, status, batch)
        leftover = conn.discard_buffered()
        if leftover:
            logger.debug("rpc.http.drained target={} bytes={}", self.describe_target(), leftover)
        # Without Content-Length the body ran to EOF, so the socket is spent.
        return result, content_length is not None
