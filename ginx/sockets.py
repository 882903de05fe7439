"""Creating, connecting and exchanging data over IPv4 sockets addressed by descriptor."""

from __future__ import annotations

import errno
import ipaddress
import os
import socket
import struct
from dataclasses import dataclass

from ginx import logger

LISTEN_BACKLOG = 128
SEND_TIMEOUT_SECONDS = 5


@dataclass
class SocketOptions:
    non_blocking: bool = True
    reuse_addr: bool = True
    type: int = socket.SOCK_STREAM


def _ipv4(address: str) -> str:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        raise ValueError(f"invalid IP address: {address}") from None
    if not isinstance(ip, ipaddress.IPv4Address):
        raise ValueError(f"invalid IP address: {address}")
    return str(ip)


class SocketManager:
    """Owns the sockets it creates and refers to them by file descriptor."""

    def __init__(self) -> None:
        self._sockets: dict[int, socket.socket] = {}

    def _get(self, fd: int) -> socket.socket:
        try:
            return self._sockets[fd]
        except KeyError:
            raise OSError(errno.EBADF, os.strerror(errno.EBADF)) from None

    def _register(self, sock: socket.socket) -> int:
        fd = sock.fileno()
        self._sockets[fd] = sock
        return fd

    def create_socket(self, options: SocketOptions | None = None) -> int:
        """Create an IPv4 socket; by default a non-blocking, address-reusing TCP one."""
        opts = SocketOptions() if options is None else options
        try:
            sock = socket.socket(socket.AF_INET, opts.type, 0)
        except OSError as exc:
            logger.error("Failed to create socket", error=exc)
            raise
        try:
            if opts.non_blocking:
                sock.setblocking(False)
            if opts.reuse_addr:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as exc:
            logger.error("Failed to configure socket", error=exc)
            sock.close()
            raise
        return self._register(sock)

    def close_socket(self, fd: int) -> None:
        self._get(fd).close()
        del self._sockets[fd]

    def bind_socket(self, fd: int, address: str, port: int) -> None:
        """Bind to an IPv4 address; an empty address means all interfaces."""
        host = "0.0.0.0" if address == "" else _ipv4(address)
        self._get(fd).bind((host, port))

    def start_listening(self, fd: int) -> None:
        self._get(fd).listen(LISTEN_BACKLOG)

    def accept_connection(self, fd: int) -> int:
        """Accept a pending client and return its non-blocking descriptor."""
        conn, _ = self._get(fd).accept()
        try:
            conn.setblocking(False)
        except OSError:
            conn.close()
            raise
        return self._register(conn)

    def read_from_socket(self, fd: int, size: int) -> bytes:
        """Read up to ``size`` bytes; an empty result means the peer closed."""
        return self._get(fd).recv(size)

    def write_to_socket(self, fd: int, data: bytes) -> int:
        """Write what the socket accepts now and return the number of bytes sent."""
        return self._get(fd).send(data)

    def connect_to_socket(self, address: str, port: int) -> int:
        """Start a non-blocking TCP connection; completion is signalled by writability."""
        host = _ipv4(address)
        fd = self.create_socket(None)
        sock = self._sockets[fd]
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError as exc:
            logger.error("Failed to set TCP_NODELAY", error=exc)
            self.close_socket(fd)
            raise
        try:
            sock.setsockopt(
                socket.SOL_SOCKET,
                socket.SO_SNDTIMEO,
                struct.pack("@ll", SEND_TIMEOUT_SECONDS, 0),
            )
        except OSError as exc:
            self.close_socket(fd)
            raise OSError(exc.errno, f"failed to set send timeout: {exc}") from exc

        code = sock.connect_ex((host, port))
        if code not in (0, errno.EINPROGRESS):
            error = OSError(code, os.strerror(code))
            logger.error("Failed to connect to socket", error=error)
            self.close_socket(fd)
            raise error
        return fd

    def check_socket_state(self, fd: int) -> int | None:
        """Log and return the socket's pending error code (0 if none).

        Returns None when the state cannot be read.
        """
        try:
            code = self._get(fd).getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            logger.error("Failed to get socket error status", error=exc)
            return None
        if code != 0:
            logger.error(
                "Socket error",
                error_code=code,
                error_message=os.strerror(code),
                fd=fd,
            )
        return code