"""Interactive client that downloads files and resumes interrupted transfers."""

from __future__ import annotations

import os
import struct
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from .netio import NetworkError, RioReader, open_clientfd, write_all
from .protocol import (
    DEFAULT_PORT,
    CommandKind,
    ParsedCommand,
    ProtocolError,
    block_sizes,
    encode_bye,
    encode_get,
    encode_resume,
    parse_command,
    read_response,
)

DEFAULT_CACHE = "cache.txt"
DEFAULT_DEST = "fichier_client"

_INT = struct.Struct("<i")
_NAME_ENCODING = "utf-8"
_NAME_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class CacheEntry:
    """State of a transfer recorded on disk."""

    filename: str
    size: int
    received: int


class TransferCache:
    """On-disk record of the transfer in progress.

    Layout: name length, name, file size, bytes received; integers are
    32-bit little endian.
    """

    def __init__(self, path=DEFAULT_CACHE):
        self.path = Path(path)
        self._progress_at: Optional[int] = None

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> CacheEntry:
        """Read the recorded transfer; raise ValueError if the record is incomplete."""
        data = self.path.read_bytes()
        if len(data) < _INT.size:
            raise ValueError("cache: cannot read file name length")
        (name_length,) = _INT.unpack_from(data, 0)
        name_end = _INT.size + name_length
        if name_length < 0 or len(data) < name_end:
            raise ValueError("cache: cannot read file name")
        if len(data) < name_end + _INT.size:
            raise ValueError("cache: cannot read file size")
        if len(data) < name_end + 2 * _INT.size:
            raise ValueError("cache: cannot read received byte count")
        (size,) = _INT.unpack_from(data, name_end)
        (received,) = _INT.unpack_from(data, name_end + _INT.size)
        self._progress_at = name_end + _INT.size
        name = data[_INT.size:name_end].decode(_NAME_ENCODING, _NAME_ERRORS)
        return CacheEntry(name, size, received)

    def begin(self, filename: str) -> None:
        """Start a new record for ``filename``."""
        name = filename.encode(_NAME_ENCODING, _NAME_ERRORS)
        with open(self.path, "wb") as handle:
            handle.write(_INT.pack(len(name)) + name)
        self._progress_at = 2 * _INT.size + len(name)

    def _position(self) -> int:
        if self._progress_at is None:
            raise RuntimeError("no transfer recorded in the cache")
        return self._progress_at

    def record_size(self, size: int) -> None:
        """Record the total size announced by the server."""
        position = self._position() - _INT.size
        with open(self.path, "r+b") as handle:
            handle.seek(position)
            handle.write(_INT.pack(size))

    def update_progress(self, count: int) -> None:
        """Record how many bytes have been received so far."""
        position = self._position()
        with open(self.path, "r+b") as handle:
            handle.seek(position)
            handle.write(_INT.pack(count))
            handle.truncate()

    def clear(self) -> None:
        """Remove the record."""
        self.path.unlink(missing_ok=True)
        self._progress_at = None


def receive_blocks(reader, out, total, cache=None, already=0) -> int:
    """Copy the blocks carrying bytes ``already`` to ``total`` into ``out``.

    Progress is recorded in ``cache`` after each block. Returns the count of
    bytes received including ``already``; it falls short of ``total`` only
    when the server closed the connection.
    """
    received = already
    for length in block_sizes(total - already):
        chunk = reader.read(length)
        out.write(chunk)
        received += len(chunk)
        if cache is not None:
            cache.update_progress(received)
        if len(chunk) < length:
            break
    return received


def resume_transfer(sock, reader, cache, dest_dir=DEFAULT_DEST) -> int:
    """Finish the transfer recorded in ``cache`` and remove the record."""
    entry = cache.load()
    print("Un fichier doit finir d'être chargé avant de continuer")
    print(f"Nom fichier : {entry.filename}")
    print(f"Taille fichier : {entry.size}")
    print(f"Nombre d'octets déjà lus : {entry.received}")

    write_all(sock, encode_resume(entry.filename, entry.received))
    response = read_response(reader)

    target = f"{os.fspath(dest_dir)}/{entry.filename}"
    descriptor = os.open(target, os.O_WRONLY | os.O_CREAT, 0o644)
    with os.fdopen(descriptor, "wb") as out:
        out.seek(entry.received)
        out.truncate()
        received = receive_blocks(reader, out, response.size, cache, entry.received)

    cache.clear()
    print("Le chargement de l'ancien fichier est terminé")
    return received


def download(sock, reader, filename, cache, dest_dir=DEFAULT_DEST) -> Optional[int]:
    """Fetch ``filename`` into ``dest_dir``.

    Returns the number of bytes received, or None when the server does not
    have the file.
    """
    cache.begin(filename)
    write_all(sock, encode_get(filename))
    start = time.monotonic()

    response = read_response(reader)
    cache.record_size(response.size)
    if not response.ok:
        print("Erreur : Fichier non existant")
        cache.clear()
        return None

    with open(f"{os.fspath(dest_dir)}/{filename}", "wb") as out:
        cache.update_progress(0)
        received = receive_blocks(reader, out, response.size, cache, 0)

    if received == response.size:
        cache.clear()

    elapsed = time.monotonic() - start
    rate = (response.size / 1024.0) / elapsed if elapsed > 0 else float("inf")
    print("Transfer successfully complete.")
    print(
        f"{response.size} bytes received in {elapsed:.2f} seconds "
        f"({rate:.2f} Kbytes/s)."
    )
    return received


def _read_commands(stream) -> Iterator[ParsedCommand]:
    while True:
        print("> FTP ", end="", flush=True)
        line = stream.readline()
        if not line:
            print()
            return
        yield parse_command(line)


def main(argv=None) -> int:
    """Connect to the host given as the only argument and run the session."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("usage: blocftp-client <host>", file=sys.stderr)
        return 0

    try:
        sock = open_clientfd(args[0], DEFAULT_PORT)
    except NetworkError as exc:
        print(exc, file=sys.stderr)
        return 1
    print("client connected to server OS")

    with sock:
        reader = RioReader(sock)
        cache = TransferCache(DEFAULT_CACHE)
        try:
            if cache.exists():
                resume_transfer(sock, reader, cache, DEFAULT_DEST)
            for command in _read_commands(sys.stdin):
                if command.kind is CommandKind.BYE:
                    break
                if command.kind is CommandKind.GET:
                    download(sock, reader, command.filename, cache, DEFAULT_DEST)
                elif command.kind is CommandKind.GET_WITHOUT_FILE:
                    print("Erreur : commande GET non suivie d'un fichier")
                else:
                    print("commande introuvable")
            write_all(sock, encode_bye())
        except (NetworkError, ProtocolError, OSError, ValueError) as exc:
            print(exc, file=sys.stderr)
            return 1

    print("The end of the communication with this client .")
    return 0


if __name__ == "__main__":
    sys.exit(main())