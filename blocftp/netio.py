"""Socket helpers: robust buffered reads, full writes and connection setup."""

from __future__ import annotations

import socket

RIO_BUFSIZE = 8192
LISTENQ = 1024


class NetworkError(Exception):
    """Raised when a socket operation or name resolution fails."""


class RioReader:
    """Buffered reader over a connected socket.

    Reads return fewer bytes than asked for only when the peer has closed
    the connection.
    """

    def __init__(self, sock):
        self._sock = sock
        self._buffer = bytearray()

    def _fill(self) -> bool:
        """Pull one chunk from the socket; return False at end of stream."""
        try:
            chunk = self._sock.recv(RIO_BUFSIZE)
        except OSError as exc:
            raise NetworkError(f"read error: {exc}") from exc
        if not chunk:
            return False
        self._buffer += chunk
        return True

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes, short only at end of stream."""
        if n < 0:
            raise ValueError("byte count must not be negative")
        while len(self._buffer) < n and self._fill():
            pass
        data = bytes(self._buffer[:n])
        del self._buffer[:n]
        return data

    def readline(self, maxlen: int) -> bytes:
        """Read a line including its newline, at most ``maxlen - 1`` bytes.

        Returns ``b""`` at end of stream when nothing was read.
        """
        limit = max(maxlen - 1, 0)
        while True:
            newline = self._buffer.find(b"\n", 0, limit)
            if newline != -1:
                end = newline + 1
                break
            if len(self._buffer) >= limit:
                end = limit
                break
            if not self._fill():
                end = len(self._buffer)
                break
        line = bytes(self._buffer[:end])
        del self._buffer[:end]
        return line


def read_exactly(sock, n: int) -> bytes:
    """Read ``n`` bytes without buffering, short only at end of stream."""
    if n < 0:
        raise ValueError("byte count must not be negative")
    parts = []
    remaining = n
    while remaining > 0:
        try:
            chunk = sock.recv(remaining)
        except OSError as exc:
            raise NetworkError(f"read error: {exc}") from exc
        if not chunk:
            break
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def write_all(sock, data: bytes) -> None:
    """Write every byte of ``data`` to the socket."""
    try:
        sock.sendall(data)
    except OSError as exc:
        raise NetworkError(f"write error: {exc}") from exc


def open_clientfd(hostname: str, port: int) -> socket.socket:
    """Connect to ``hostname:port`` over IPv4 and return the socket."""
    try:
        infos = socket.getaddrinfo(
            hostname, port, socket.AF_INET, socket.SOCK_STREAM
        )
    except socket.gaierror as exc:
        raise NetworkError(f"cannot resolve {hostname!r}: {exc}") from exc
    if not infos:
        raise NetworkError("getaddrinfo returned no address")
    family, socktype, proto, _, address = infos[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.connect(address)
    except OSError as exc:
        sock.close()
        raise NetworkError(f"cannot connect to {hostname}:{port}: {exc}") from exc
    return sock


def open_listenfd(port: int) -> socket.socket:
    """Return an IPv4 socket listening on ``port`` on every interface."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", port))
        sock.listen(LISTENQ)
    except OSError as exc:
        sock.close()
        raise NetworkError(f"cannot listen on port {port}: {exc}") from exc
    return sock