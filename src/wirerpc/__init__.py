"""Minimal JSON-RPC 2.0 client.

Builds requests with unique ids, sends them over a pluggable transport and
matches responses back to requests, including out-of-order batches.
"""

from loguru import logger

from wirerpc.client import AsyncClient, Client
from wirerpc.errors import (
    BatchDuplicateResponseIdError,
    EmptyBatchError,
    JsonError,
    NoErrorOrResultError,
    NonceMismatchError,
    RpcClientError,
    RpcErrorException,
    TransportError,
    VersionMismatchError,
    WrongBatchResponseIdError,
    WrongBatchResponseSizeError,
)
from wirerpc.hashable import HashableValue
from wirerpc.types import Request, Response, RpcError, StandardError, standard_error

logger.disable("wirerpc")

__all__ = [
    "AsyncClient",
    "BatchDuplicateResponseIdError",
    "Client",
    "EmptyBatchError",
    "HashableValue",
    "JsonError",
    "NoErrorOrResultError",
    "NonceMismatchError",
    "Request",
    "Response",
    "RpcClientError",
    "RpcError",
    "RpcErrorException",
    "StandardError",
    "TransportError",
    "VersionMismatchError",
    "WrongBatchResponseIdError",
    "WrongBatchResponseSizeError",
    "standard_error",
]
