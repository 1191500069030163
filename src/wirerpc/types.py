"""JSON-RPC 2.0 type definitions.

Requests, responses and error objects as they appear on the wire, plus
the standard error codes defined by the JSON-RPC 2.0 specification.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from wirerpc.errors import JsonError, NoErrorOrResultError, RpcErrorException

RequestId = int | str | None
Params = list[Any] | dict[str, Any]


class StandardError(IntEnum):
    """Error codes reserved by JSON-RPC 2.0."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


_STANDARD_MESSAGES: dict[StandardError, str] = {
    StandardError.PARSE_ERROR: "Parse error",
    StandardError.INVALID_REQUEST: "Invalid Request",
    StandardError.METHOD_NOT_FOUND: "Method not found",
    StandardError.INVALID_PARAMS: "Invalid params",
    StandardError.INTERNAL_ERROR: "Internal error",
}


class RpcError(BaseModel):
    """Error object carried by a failed response."""

    code: int = Field(ge=-(2**31), le=2**31 - 1)
    message: str
    data: Any = None


class Request(BaseModel):
    """A JSON-RPC request. Immutable once built."""

    method: str
    params: Params = Field(default_factory=list)
    id: RequestId
    jsonrpc: Literal["2.0"] = "2.0"

    model_config = ConfigDict(frozen=True, extra="forbid")


class Response(BaseModel):
    """A JSON-RPC response.

    ``result`` counts as present when the key appeared on the wire, even
    with a ``null`` value. A response with neither ``result`` nor
    ``error`` is only rejected when its result is asked for.
    """

    result: Any = None
    error: RpcError | None = None
    id: Any = None
    jsonrpc: str | None = None

    model_config = ConfigDict(extra="ignore")

    @property
    def has_result(self) -> bool:
        return "result" in self.model_fields_set

    def is_none(self) -> bool:
        """Whether the response carries neither a result nor an error."""
        return self.error is None and not self.has_result

    def check_error(self) -> None:
        """Raise the server-returned error, if there is one."""
        if self.error is not None:
            raise RpcErrorException(self.error)

    def get_result(self, result_type: Any = None) -> Any:
        """Return the result, raising on an error or an empty response.

        Args:
            result_type: Optional type to validate the raw result into,
                e.g. ``list[int]`` or a pydantic model.
        """
        self.check_error()
        if not self.has_result:
            raise NoErrorOrResultError()
        if result_type is None:
            return self.result
        try:
            return TypeAdapter(result_type).validate_python(self.result)
        except ValidationError as e:
            raise JsonError(f"cannot decode result as {result_type!r}") from e


def standard_error(code: StandardError, data: Any = None) -> RpcError:
    """Build the error object for one of the reserved codes."""
    return RpcError(code=int(code), message=_STANDARD_MESSAGES[code], data=data)


def result_to_response(result: Any, id: RequestId, error: RpcError | None = None) -> Response:
    """Wrap a handler outcome in a response addressed to ``id``."""
    if error is not None:
        return Response(error=error, id=id, jsonrpc="2.0")
    return Response(result=result, id=id, jsonrpc="2.0")


request_batch_adapter: TypeAdapter[list[Request]] = TypeAdapter(list[Request])
response_batch_adapter: TypeAdapter[list[Response]] = TypeAdapter(list[Response])


def encode_request(request: Request) -> bytes:
    return request.model_dump_json().encode("utf-8")


def encode_batch(requests: list[Request]) -> bytes:
    return request_batch_adapter.dump_json(requests)


def decode_response(data: bytes | str | Any, *, raw: bool = False) -> Response:
    """Decode a single response from JSON text, or from a parsed value when ``raw``."""
    try:
        if raw:
            return Response.model_validate(data)
        return Response.model_validate_json(data)
    except ValidationError as e:
        raise JsonError("malformed JSON-RPC response") from e


def decode_batch(data: bytes | str | Any, *, raw: bool = False) -> list[Response]:
    """Decode a batch response from JSON text, or from a parsed value when ``raw``."""
    try:
        if raw:
            return response_batch_adapter.validate_python(data)
        return response_batch_adapter.validate_json(data)
    except ValidationError as e:
        raise JsonError("malformed JSON-RPC batch response") from e


__all__ = [
    "Params",
    "Request",
    "RequestId",
    "Response",
    "RpcError",
    "StandardError",
    "decode_batch",
    "decode_response",
    "encode_batch",
    "encode_request",
    "request_batch_adapter",
    "response_batch_adapter",
    "result_to_response",
    "standard_error",
]
