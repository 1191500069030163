"""Exception taxonomy for the JSON-RPC client.

Every exception raised by this package derives from :class:`RpcClientError`.
Transport failures derive from :class:`TransportError`; the underlying cause
(``OSError``, pydantic ``ValidationError``...) is chained as ``__cause__``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wirerpc.types import RpcError


class RpcClientError(Exception):
    """Base class for all client errors."""


class JsonError(RpcClientError):
    """A JSON value could not be decoded into the expected shape."""


# Transport / wire


class TransportError(RpcClientError):
    """Base class for failures on the wire."""


class InvalidUrlError(TransportError):
    """The URL passed to a transport could not be parsed."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"invalid URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class SocketError(TransportError):
    """An error occurred on the socket layer."""


class TransportTimeoutError(TransportError):
    """The exchange did not complete before its deadline."""

    def __init__(self, message: str = "didn't receive response data in time, timed out") -> None:
        super().__init__(message)


class ProxyError(TransportError):
    """The SOCKS5 proxy refused or garbled the tunnel handshake."""


class HttpResponseTooShortError(TransportError):
    """The status line was shorter than ``HTTP/1.1 NNN``."""

    def __init__(self, actual: int, needed: int) -> None:
        super().__init__(f"HTTP response too short: length {actual}, needed {needed}")
        self.actual = actual
        self.needed = needed


class HttpResponseNonAsciiHelloError(TransportError):
    """The status line contained non-ASCII bytes."""

    def __init__(self, data: bytes) -> None:
        super().__init__(f"HTTP response started with non-ASCII {data!r}")
        self.data = data


class HttpResponseBadHelloError(TransportError):
    """The status line did not start with the expected protocol marker."""

    def __init__(self, actual: str, expected: str) -> None:
        super().__init__(f"HTTP response started with {actual!r}; expected {expected!r}")
        self.actual = actual
        self.expected = expected


class HttpResponseBadStatusError(TransportError):
    """The status code was not an unsigned integer."""

    def __init__(self, status: str) -> None:
        super().__init__(f"HTTP response had bad status code {status!r}")
        self.status = status


class HttpResponseBadContentLengthError(TransportError):
    """The ``Content-Length`` header was not an unsigned integer."""

    def __init__(self, value: str) -> None:
        super().__init__(f"HTTP response had bad content length {value!r}")
        self.value = value


class HttpResponseContentLengthTooLargeError(TransportError):
    """The declared body exceeds the configured cap."""

    def __init__(self, length: int, max_length: int) -> None:
        super().__init__(f"HTTP response content length {length} exceeds our max {max_length}")
        self.length = length
        self.max_length = max_length


class HttpResponseIncompleteHeadersError(TransportError):
    """The connection closed before the blank line ending the headers."""

    def __init__(self) -> None:
        super().__init__("connection closed while reading HTTP response headers")


class HttpResponseLineTooLongError(TransportError):
    """A status or header line exceeded the line cap."""

    def __init__(self, max_length: int) -> None:
        super().__init__(f"HTTP response line longer than {max_length} bytes")
        self.max_length = max_length


class HttpErrorCodeError(TransportError):
    """The server answered with a non-success status and no usable body."""

    def __init__(self, status: int) -> None:
        super().__init__(f"unexpected HTTP code: {status}")
        self.status = status


class IncompleteResponseError(TransportError):
    """The connection closed before ``Content-Length`` bytes were read."""

    def __init__(self, content_length: int, n_read: int) -> None:
        super().__init__(f"read {n_read} bytes but HTTP response content-length header was {content_length}")
        self.content_length = content_length
        self.n_read = n_read


# Protocol / correlation


class VersionMismatchError(RpcClientError):
    """The response carried a ``jsonrpc`` marker other than ``"2.0"``."""

    def __init__(self, version: str) -> None:
        super().__init__(f"response has version {version!r}, expected '2.0'")
        self.version = version


class NonceMismatchError(RpcClientError):
    """The response id does not match the request id."""

    def __init__(self, expected: Any, actual: Any) -> None:
        super().__init__(f"response id {actual!r} does not match request id {expected!r}")
        self.expected = expected
        self.actual = actual


class EmptyBatchError(RpcClientError):
    """A batch with no requests was submitted."""

    def __init__(self) -> None:
        super().__init__("batches can't be empty")


class WrongBatchResponseSizeError(RpcClientError):
    """The server returned more responses than requests were sent."""

    def __init__(self, n_requests: int, n_responses: int) -> None:
        super().__init__(f"too many responses returned in batch: {n_responses} for {n_requests} requests")
        self.n_requests = n_requests
        self.n_responses = n_responses


class BatchDuplicateResponseIdError(RpcClientError):
    """Two responses in one batch shared an id."""

    def __init__(self, id: Any) -> None:
        super().__init__(f"batch received duplicate response id {id!r}")
        self.id = id


class WrongBatchResponseIdError(RpcClientError):
    """A batch response id matched none of the requests."""

    def __init__(self, id: Any) -> None:
        super().__init__(f"batch received response with unknown id {id!r}")
        self.id = id


# Application


class RpcErrorException(RpcClientError):
    """The server returned an error object."""

    def __init__(self, error: RpcError) -> None:
        super().__init__(f"RPC error {error.code}: {error.message}")
        self.error = error

    @property
    def code(self) -> int:
        return self.error.code


class NoErrorOrResultError(RpcClientError):
    """The response carried neither a result nor an error."""

    def __init__(self) -> None:
        super().__init__("response has neither error nor result")
