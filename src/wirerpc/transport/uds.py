"""Unix domain socket transport, framed like :mod:`wirerpc.transport.tcp`."""

from __future__ import annotations

import os
import socket
from collections.abc import Sequence
from typing import Any

from loguru import logger

from wirerpc.errors import SocketError, TransportTimeoutError
from wirerpc.transport.tcp import exchange
from wirerpc.types import Request, Response, encode_batch, encode_request


class UdsTransport:
    """Synchronous transport over a new Unix socket connection per exchange."""

    def __init__(self, sockpath: str | os.PathLike[str], timeout: float | None = None) -> None:
        self.sockpath = os.fspath(sockpath)
        self.timeout = timeout

    def describe_target(self) -> str:
        return self.sockpath

    def send_request(self, request: Request) -> Response:
        return self._request(encode_request(request), batch=False)

    def send_batch(self, requests: Sequence[Request]) -> list[Response]:
        return self._request(encode_batch(list(requests)), batch=True)

    def _request(self, body: bytes, batch: bool) -> Any:
        logger.debug("rpc.uds.connect path={}", self.sockpath)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        with sock:
            sock.settimeout(self.timeout)
            try:
                sock.connect(self.sockpath)
            except TimeoutError as e:
                raise TransportTimeoutError() from e
            except OSError as e:
                raise SocketError(f"couldn't connect to {self.sockpath}: {e}") from e
            return exchange(sock, body, batch)
