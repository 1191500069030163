"""Minimal SOCKS5 client handshake (RFC 1928, RFC 1929 auth).

Only the CONNECT command is supported. Message building and reply checking
are plain functions so the blocking and asyncio transports share them.
"""

from __future__ import annotations

import asyncio
import ipaddress
import socket
import struct

from wirerpc.errors import InvalidUrlError, ProxyError

DEFAULT_PROXY_PORT = 9050

SOCKS_VERSION = 0x05
AUTH_VERSION = 0x01
METHOD_NO_AUTH = 0x00
METHOD_USER_PASS = 0x02
METHOD_UNACCEPTABLE = 0xFF
CMD_CONNECT = 0x01
ATYP_IPV4 = 0x01
ATYP_DOMAIN = 0x03
ATYP_IPV6 = 0x04

_REPLY_MESSAGES = {
    0x01: "general SOCKS server failure",
    0x02: "connection not allowed by ruleset",
    0x03: "network unreachable",
    0x04: "host unreachable",
    0x05: "connection refused",
    0x06: "TTL expired",
    0x07: "command not supported",
    0x08: "address type not supported",
}

ProxyAuth = tuple[str, str]


def parse_proxy_addr(addr: str) -> tuple[str, int]:
    """Parse ``host[:port]``, defaulting to the Tor SOCKS port."""
    host, sep, port_str = addr.rpartition(":")
    if not sep:
        return addr, DEFAULT_PROXY_PORT
    if not port_str.isdigit() or not 0 < int(port_str) < 65536:
        raise InvalidUrlError(addr, "invalid proxy port")
    return host, int(port_str)


def greeting(auth: ProxyAuth | None) -> bytes:
    methods = [METHOD_NO_AUTH] if auth is None else [METHOD_USER_PASS]
    return bytes([SOCKS_VERSION, len(methods), *methods])


def check_method(reply: bytes, auth: ProxyAuth | None) -> None:
    """Accept only the method that was offered for ``auth``."""
    version, method = reply[0], reply[1]
    if version != SOCKS_VERSION:
        raise ProxyError(f"proxy answered with SOCKS version {version}")
    if method == METHOD_UNACCEPTABLE:
        raise ProxyError("proxy accepted none of the offered auth methods")
    expected = METHOD_NO_AUTH if auth is None else METHOD_USER_PASS
    if method != expected:
        raise ProxyError(f"proxy selected unexpected auth method {method:#x}")


def auth_request(auth: ProxyAuth) -> bytes:
    user, password = (part.encode("utf-8") for part in auth)
    if len(user) > 255 or len(password) > 255:
        raise ProxyError("proxy credentials longer than 255 bytes")
    return bytes([AUTH_VERSION, len(user)]) + user + bytes([len(password)]) + password


def check_auth(reply: bytes) -> None:
    if reply[1] != 0x00:
        raise ProxyError("proxy rejected the credentials")


def connect_request(host: str, port: int) -> bytes:
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        name = host.encode("idna")
        address = bytes([ATYP_DOMAIN, len(name)]) + name
    else:
        atyp = ATYP_IPV4 if ip.version == 4 else ATYP_IPV6
        address = bytes([atyp]) + ip.packed
    return bytes([SOCKS_VERSION, CMD_CONNECT, 0x00]) + address + struct.pack("!H", port)


def check_connect(head: bytes) -> int:
    """Validate the first five reply bytes; return how many remain to be read."""
    version, rep, _, atyp, first = head
    if version != SOCKS_VERSION:
        raise ProxyError(f"proxy answered with SOCKS version {version}")
    if rep != 0x00:
        raise ProxyError(_REPLY_MESSAGES.get(rep, f"unknown SOCKS reply {rep:#x}"))
    # Bound address (minus the byte already read) plus two port bytes.
    if atyp == ATYP_IPV4:
        return 4 - 1 + 2
    if atyp == ATYP_IPV6:
        return 16 - 1 + 2
    if atyp == ATYP_DOMAIN:
        return first + 2
    raise ProxyError(f"proxy replied with unknown address type {atyp:#x}")


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    buf = bytearray()
    while len(buf) < n:
        chunk = sock.recv(n - len(buf))
        if not chunk:
            raise ProxyError("proxy closed the connection during the handshake")
        buf += chunk
    return bytes(buf)


def handshake(sock: socket.socket, host: str, port: int, auth: ProxyAuth | None = None) -> None:
    """Ask the proxy on ``sock`` to open a tunnel to ``host:port``."""
    sock.sendall(greeting(auth))
    check_method(_recv_exact(sock, 2), auth)
    if auth is not None:
        sock.sendall(auth_request(auth))
        check_auth(_recv_exact(sock, 2))
    sock.sendall(connect_request(host, port))
    _recv_exact(sock, check_connect(_recv_exact(sock, 5)))


async def _read_exact(reader: asyncio.StreamReader, n: int) -> bytes:
    try:
        return await reader.readexactly(n)
    except asyncio.IncompleteReadError as e:
        raise ProxyError("proxy closed the connection during the handshake") from e


async def handshake_async(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    host: str,
    port: int,
    auth: ProxyAuth | None = None,
) -> None:
    """asyncio version of :func:`handshake`."""
    writer.write(greeting(auth))
    await writer.drain()
    check_method(await _read_exact(reader, 2), auth)
    if auth is not None:
        writer.write(auth_request(auth))
        await writer.drain()
        check_auth(await _read_exact(reader, 2))
    writer.write(connect_request(host, port))
    await writer.drain()
    await _read_exact(reader, check_connect(await _read_exact(reader, 5)))
