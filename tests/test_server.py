import socket
import threading

import pytest

from blocftp.netio import RioReader, write_all
from blocftp.protocol import (
    Response,
    encode_bye,
    encode_get,
    encode_resume,
    read_response,
)
from blocftp.server import main, send_file, serve_connection

CONTENT = bytes(range(256)) * 20


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def root(tmp_path):
    directory = tmp_path / "files"
    directory.mkdir()
    (directory / "hello.txt").write_bytes(CONTENT)
    return directory


def _start(sock, root):
    result = {}

    def run():
        result["count"] = serve_connection(RioReader(sock), sock, root)

    thread = threading.Thread(target=run)
    thread.start()
    return thread, result


def test_send_file_missing(pair, tmp_path):
    left, right = pair
    response = send_file(left, tmp_path / "absent.txt", 0)
    assert response == Response(-1, 0)
    left.close()
    reader = RioReader(right)
    assert read_response(reader) == Response(-1, 0)
    assert reader.read(1) == b""


def test_send_file_whole(pair, root):
    left, right = pair
    response = send_file(left, root / "hello.txt", 0)
    assert response == Response(0, len(CONTENT))
    left.close()
    reader = RioReader(right)
    assert read_response(reader) == Response(0, len(CONTENT))
    assert reader.read(len(CONTENT)) == CONTENT
    assert reader.read(1) == b""


def test_send_file_from_offset(pair, root):
    left, right = pair
    send_file(left, root / "hello.txt", 2500)
    left.close()
    reader = RioReader(right)
    assert read_response(reader).size == len(CONTENT)
    assert reader.read(len(CONTENT)) == CONTENT[2500:]


def test_send_file_offset_past_end(pair, root):
    left, right = pair
    send_file(left, root / "hello.txt", len(CONTENT) + 10)
    left.close()
    reader = RioReader(right)
    assert read_response(reader) == Response(0, len(CONTENT))
    assert reader.read(1) == b""


def test_serve_get_then_bye(pair, root):
    server_sock, client_sock = pair
    thread, result = _start(server_sock, root)
    write_all(client_sock, encode_get("hello.txt") + encode_bye())
    reader = RioReader(client_sock)
    assert read_response(reader) == Response(0, len(CONTENT))
    assert reader.read(len(CONTENT)) == CONTENT
    thread.join(timeout=5)
    assert result["count"] == 1


def test_serve_resume(pair, root):
    server_sock, client_sock = pair
    thread, result = _start(server_sock, root)
    write_all(client_sock, encode_resume("hello.txt", 3) + encode_bye())
    reader = RioReader(client_sock)
    assert read_response(reader).ok
    assert reader.read(len(CONTENT) - 3) == CONTENT[3:]
    thread.join(timeout=5)
    assert result["count"] == 1


def test_serve_missing_file(pair, root):
    server_sock, client_sock = pair
    thread, result = _start(server_sock, root)
    write_all(client_sock, encode_get("nothing.bin") + encode_bye())
    assert read_response(RioReader(client_sock)) == Response(-1, 0)
    thread.join(timeout=5)
    assert result["count"] == 1


def test_serve_two_requests(pair, root):
    server_sock, client_sock = pair
    thread, result = _start(server_sock, root)
    write_all(client_sock, encode_get("hello.txt") + encode_get("hello.txt"))
    reader = RioReader(client_sock)
    for _ in range(2):
        assert read_response(reader).size == len(CONTENT)
        assert reader.read(len(CONTENT)) == CONTENT
    client_sock.close()
    thread.join(timeout=5)
    assert result["count"] == 2


def test_serve_disconnect_without_request(pair, root):
    server_sock, client_sock = pair
    client_sock.close()
    count = serve_connection(RioReader(server_sock), server_sock, root)
    assert count == 0


def test_serve_truncated_request(pair, root):
    server_sock, client_sock = pair
    client_sock.sendall(b"\x00\x00")
    client_sock.close()
    count = serve_connection(RioReader(server_sock), server_sock, root)
    assert count == 0


def test_main_rejects_arguments(capsys):
    assert main(["extra"]) == 0
    assert "usage" in capsys.readouterr().err