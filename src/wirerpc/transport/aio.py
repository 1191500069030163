"""asyncio flavour of the minimal HTTP/1.1 transport.

Same framing and parsing as :class:`wirerpc.transport.http.SimpleHttpTransport`;
the cached stream pair is guarded by an :class:`asyncio.Lock` so one exchange
runs at a time per transport instance.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

from loguru import logger

from wirerpc.errors import (
    HttpErrorCodeError,
    HttpResponseIncompleteHeadersError,
    HttpResponseLineTooLongError,
    IncompleteResponseError,
    SocketError,
    TransportError,
    TransportTimeoutError,
)
from wirerpc.transport import socks
from wirerpc.transport.http import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    FINAL_RESP_ALLOC,
    MAX_LINE_LENGTH,
    basic_auth,
    body_limit,
    decode_body,
    frame_request,
    is_header_end,
    parse_content_length,
    parse_status_line,
    parse_url,
    resolve,
)
from wirerpc.types import Request, Response, encode_batch, encode_request

_READ_CHUNK = 64 * 1024


class _StreamConnection:
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.reader = reader
        self.writer = writer

    async def readline(self) -> bytes:
        try:
            return await self.reader.readline()
        except ValueError as e:
            raise HttpResponseLineTooLongError(MAX_LINE_LENGTH) from e

    async def read(self, n: int) -> bytes:
        buf = bytearray()
        while len(buf) < n:
            chunk = await self.reader.read(min(n - len(buf), _READ_CHUNK))
            if not chunk:
                break
            buf += chunk
        return bytes(buf)

    def close(self) -> None:
        self.writer.close()


class AsyncHttpTransport:
    """asyncio HTTP/1.1 transport with one cached connection.

    Takes the same arguments as
    :class:`~wirerpc.transport.http.SimpleHttpTransport`.
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
        self._lock = asyncio.Lock()
        self._conn: _StreamConnection | None = None

    def describe_target(self) -> str:
        return f"http://{self._host}:{self._port}{self._path}"

    async def send_request(self, request: Request) -> Response:
        return await self._request(encode_request(request), batch=False)

    async def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        return await self._request(encode_batch(list(requests)), batch=True)

    async def aclose(self) -> None:
        async with self._lock:
            self._discard()

    def _discard(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            conn.close()

    async def _connect(self) -> _StreamConnection:
        if self._proxy_addr is None:
            logger.debug("rpc.http.connect addr={}:{}", *self._addr)
            reader, writer = await asyncio.open_connection(*self._addr, limit=MAX_LINE_LENGTH)
            return _StreamConnection(reader, writer)

        logger.debug("rpc.http.connect addr={}:{} proxy={}:{}", *self._addr, *self._proxy_addr)
        reader, writer = await asyncio.open_connection(*self._proxy_addr, limit=MAX_LINE_LENGTH)
        try:
            await socks.handshake_async(reader, writer, self._addr[0], self._addr[1], self._proxy_auth)
        except BaseException:
            writer.close()
            raise
        return _StreamConnection(reader, writer)

    async def _request(self, body: bytes, batch: bool) -> Any:
        async with self._lock:
            deadline = asyncio.get_running_loop().time() + self.timeout
            try:
                async with asyncio.timeout_at(deadline):
                    if self._conn is None:
                        self._conn = await self._connect()
                    result, reusable = await self._exchange(self._conn, body, batch)
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

    async def _exchange(self, conn: _StreamConnection, body: bytes, batch: bool) -> tuple[Any, bool]:
        conn.writer.write(frame_request(self._path, body, self._basic_auth))
        await conn.writer.drain()

        line = await conn.readline()
        while is_header_end(line):
            # Stray CRLF the server sent after the previous body.
            line = await conn.readline()
        status = parse_status_line(line)
        content_length: int | None = None
        while True:
            line = await conn.readline()
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
        payload = await conn.read(limit)
        if content_length is not None and len(payload) < content_length:
            raise IncompleteResponseError(content_length, len(payload))

        logger.debug("rpc.http.response status={} bytes={}", status, len(payload))
        return decode_body(payload, status, batch), content_length is not None
