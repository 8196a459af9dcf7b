"""File server: a pool of worker processes answering GET and resume requests."""

from __future__ import annotations

import os
import signal
import socket
import sys

from .netio import NetworkError, RioReader, open_listenfd, write_all
from .protocol import (
    DEFAULT_PORT,
    ProtocolError,
    RequestType,
    Response,
    block_sizes,
    encode_response,
    read_request,
)

DEFAULT_ROOT = "fichier_serveur"
DEFAULT_WORKERS = 10


def _log(message: str, *, error: bool = False) -> None:
    print(message, file=sys.stderr if error else sys.stdout, flush=True)


def _resolve(root, filename: str) -> str:
    return f"{os.fspath(root)}/{filename}"


def send_file(sock, path, offset=0) -> Response:
    """Send the response header and the bytes of ``path`` from ``offset`` on.

    The announced size is always the whole file size; the blocks sent carry
    the bytes that remain after ``offset``. A file that cannot be opened is
    answered with status -1 and size 0.
    """
    try:
        handle = open(path, "rb")
    except OSError:
        response = Response(-1, 0)
        _log("Erreur lors de l'ouverture du fichier!")
        write_all(sock, encode_response(response))
        return response

    with handle:
        try:
            size = os.fstat(handle.fileno()).st_size
        except OSError as exc:
            _log(f"Erreur fstat: {exc}", error=True)
            response = Response(-1, 0)
            write_all(sock, encode_response(response))
            return response

        response = Response(0, size)
        write_all(sock, encode_response(response))
        _log(f"Taille de fichier: {size}")

        handle.seek(max(offset, 0))
        for length in block_sizes(size - offset):
            try:
                chunk = handle.read(length)
            except OSError as exc:
                _log(f"Erreur de lecture: {exc}", error=True)
                break
            # The client expects exactly the announced number of bytes.
            write_all(sock, chunk.ljust(length, b"\0"))
        return response


def serve_connection(reader, sock, root) -> int:
    """Answer requests on one connection until BYE or disconnection.

    Returns the number of file requests that were answered.
    """
    served = 0
    while True:
        try:
            request = read_request(reader)
        except ProtocolError as exc:
            _log(f"Erreur lors de la lecture de la requête: {exc}", error=True)
            return served
        if request is None:
            _log("Client déconnecté", error=True)
            return served
        if request.type is RequestType.BYE:
            return served

        _log(f"Nombre d'octets déjà lus : {request.offset}")
        _log(f"Nom fichier: {request.filename}")
        send_file(sock, _resolve(root, request.filename), request.offset)
        _log("Fin de traitement!\n")
        served += 1


def _client_name(address) -> tuple[str, str]:
    ip = address[0]
    try:
        host, _ = socket.getnameinfo(address, 0)
    except OSError:
        host = ip
    return host, ip


def _worker(listener, root) -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    while True:
        try:
            conn, address = listener.accept()
        except OSError as exc:
            raise NetworkError(f"accept error: {exc}") from exc
        with conn:
            host, ip = _client_name(address)
            _log(f"Serveur connecté avec : {host} ({ip})\n")
            try:
                serve_connection(RioReader(conn), conn, root)
            except NetworkError as exc:
                _log(str(exc), error=True)
            _log(f"Fin de communication avec {host} ({ip})\n")


def run_server(port=DEFAULT_PORT, root=DEFAULT_ROOT, workers=DEFAULT_WORKERS) -> None:
    """Listen on ``port`` and serve files from ``root`` with forked workers.

    Returns after an interrupt, once every worker has been stopped.
    """
    listener = open_listenfd(port)
    children: list[int] = []
    try:
        for _ in range(workers):
            pid = os.fork()
            if pid == 0:
                status = 0
                try:
                    _worker(listener, root)
                except BaseException:
                    status = 1
                finally:
                    os._exit(status)
            children.append(pid)
        while True:
            signal.pause()
    except KeyboardInterrupt:
        pass
    finally:
        for pid in children:
            try:
                os.kill(pid, signal.SIGINT)
            except ProcessLookupError:
                pass
        for pid in children:
            try:
                os.waitpid(pid, 0)
            except ChildProcessError:
                pass
        listener.close()


def main(argv=None) -> int:
    """Start the server on the default port; it takes no arguments."""
    args = sys.argv[1:] if argv is None else list(argv)
    if args:
        print("usage: blocftp-server", file=sys.stderr)
        return 0
    try:
        run_server()
    except NetworkError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())