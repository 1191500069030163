"""Client settings."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wirerpc.client import Client
from wirerpc.transport.base import Transport
from wirerpc.transport.http import DEFAULT_PORT, DEFAULT_TIMEOUT, FINAL_RESP_ALLOC, SimpleHttpTransport, parse_url
from wirerpc.transport.httpx_adapter import HttpxTransport
from wirerpc.transport.tcp import TcpTransport
from wirerpc.transport.uds import UdsTransport

TransportKind = Literal["http", "tcp", "uds", "httpx"]


class ClientSettings(BaseSettings):
    """Where and how to reach the JSON-RPC server."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WIRERPC_",
        case_sensitive=False,
        extra="ignore",
    )

    transport: TransportKind = Field(default="http")
    url: str = Field(default=f"http://127.0.0.1:{DEFAULT_PORT}/")
    socket_path: str | None = Field(default=None)
    user: str | None = Field(default=None)
    password: str | None = Field(default=None)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    max_content_length: int = Field(default=FINAL_RESP_ALLOC, ge=0)
    proxy: str | None = Field(default=None)
    proxy_user: str | None = Field(default=None)
    proxy_password: str | None = Field(default=None)

    @property
    def proxy_auth(self) -> tuple[str, str] | None:
        if self.proxy_user is None:
            return None
        return self.proxy_user, self.proxy_password or ""


def load_settings(**overrides: Any) -> ClientSettings:
    """Load settings from the environment, ignoring ``None`` overrides."""
    return ClientSettings(**{k: v for k, v in overrides.items() if v is not None})


def build_transport(settings: ClientSettings) -> Transport:
    """Instantiate the transport selected by ``settings.transport``."""
    if settings.transport == "http":
        return SimpleHttpTransport(
            settings.url,
            timeout=settings.timeout,
            user=settings.user,
            password=settings.password,
            proxy=settings.proxy,
            proxy_auth=settings.proxy_auth,
            max_content_length=settings.max_content_length,
        )
    if settings.transport == "httpx":
        return HttpxTransport(settings.url, timeout=settings.timeout, user=settings.user, password=settings.password)
    if settings.transport == "tcp":
        parsed = parse_url(settings.url)
        return TcpTransport((parsed.host, parsed.port), timeout=settings.timeout)
    if not settings.socket_path:
        raise ValueError("the uds transport needs WIRERPC_SOCKET_PATH")
    return UdsTransport(settings.socket_path, timeout=settings.timeout)


def build_client(settings: ClientSettings | None = None) -> Client:
    """Create a client from ``settings`` (loaded from the environment by default)."""
    return Client(build_transport(settings or load_settings()))
