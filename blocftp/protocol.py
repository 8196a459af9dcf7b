"""Wire format of the block transfer protocol and parsing of user commands."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Iterator, Optional

BLOCK_SIZE = 2000
MAXLINE = 8192
DEFAULT_PORT = 2121

# Shortest file name the server accepts when reading a request.
MIN_NAME_LENGTH = 4

_INT = struct.Struct("<i")
_PAIR = struct.Struct("<ii")
_NAME_ENCODING = "utf-8"
_NAME_ERRORS = "surrogateescape"


class ProtocolError(Exception):
    """Raised when a peer sends a malformed or truncated message."""


class RequestType(enum.IntEnum):
    """Request codes as they travel on the wire."""

    GET = 0
    BYE = 1
    GETR = 2


class CommandKind(enum.Enum):
    """What a line typed by the user asks for."""

    GET = "get"
    BYE = "bye"
    UNKNOWN = "unknown"
    GET_WITHOUT_FILE = "get_without_file"


@dataclass(frozen=True)
class ParsedCommand:
    """A user command line split into its kind and file name."""

    kind: CommandKind
    filename: Optional[str] = None


@dataclass(frozen=True)
class Request:
    """A request received by the server."""

    type: RequestType
    filename: str = ""
    offset: int = 0


@dataclass(frozen=True)
class Response:
    """The server's answer: a status (0 on success, -1 otherwise) and the file size."""

    status: int = 0
    size: int = 0

    @property
    def ok(self) -> bool:
        return self.status == 0


def parse_command(line: str) -> ParsedCommand:
    """Interpret a command line such as ``GET toto.txt`` or ``bye``."""
    if line.endswith("\n"):
        line = line[:-1]
    command, space, rest = line.partition(" ")
    if command == "GET":
        if not space or not rest:
            return ParsedCommand(CommandKind.GET_WITHOUT_FILE)
        return ParsedCommand(CommandKind.GET, rest)
    if command == "bye":
        return ParsedCommand(CommandKind.BYE)
    return ParsedCommand(CommandKind.UNKNOWN)


def _encode_name(filename: str) -> bytes:
    return filename.encode(_NAME_ENCODING, _NAME_ERRORS)


def encode_get(filename: str) -> bytes:
    """Encode a request for the whole of ``filename``."""
    name = _encode_name(filename)
    return _INT.pack(RequestType.GET) + _INT.pack(len(name)) + name


def encode_resume(filename: str, offset: int) -> bytes:
    """Encode a request for ``filename`` starting at byte ``offset``."""
    name = _encode_name(filename)
    return (
        _INT.pack(RequestType.GETR)
        + _INT.pack(offset)
        + _INT.pack(len(name))
        + name
    )


def encode_bye() -> bytes:
    """Encode the end-of-session request."""
    return _INT.pack(RequestType.BYE)


def _read_int(reader, what: str) -> int:
    data = reader.read(_INT.size)
    if not data:
        raise ProtocolError(f"peer disconnected before {what}")
    if len(data) < _INT.size:
        raise ProtocolError(f"truncated {what}")
    return _INT.unpack(data)[0]


def read_request(reader) -> Optional[Request]:
    """Read one request from ``reader``.

    Returns ``None`` when the peer closed the connection before a new
    request began. Any code other than BYE or GETR is served as GET.
    """
    data = reader.read(_INT.size)
    if not data:
        return None
    if len(data) < _INT.size:
        raise ProtocolError("truncated request type")
    code = _INT.unpack(data)[0]
    if code == RequestType.BYE:
        return Request(RequestType.BYE)

    kind = RequestType.GETR if code == RequestType.GETR else RequestType.GET
    offset = 0
    if kind is RequestType.GETR:
        offset = _read_int(reader, "resume offset")

    length = _read_int(reader, "file name length")
    if length < 0:
        raise ProtocolError(f"invalid file name length {length}")
    name = reader.read(length)
    if not name:
        raise ProtocolError("peer disconnected before file name")
    if len(name) < min(length, MIN_NAME_LENGTH) or len(name) < MIN_NAME_LENGTH:
        raise ProtocolError("file name too short")
    if len(name) < length:
        raise ProtocolError("truncated file name")
    return Request(kind, name.decode(_NAME_ENCODING, _NAME_ERRORS), offset)


def encode_response(response: Response) -> bytes:
    """Encode a response as status followed by file size."""
    return _PAIR.pack(response.status, response.size)


def read_response(reader) -> Response:
    """Read a response sent by the server."""
    status = _read_int(reader, "response status")
    size = _read_int(reader, "file size")
    return Response(status, size)


def block_sizes(total: int) -> Iterator[int]:
    """Yield the sizes of the blocks that carry ``total`` bytes."""
    if total <= 0:
        return
    full, last = divmod(total, BLOCK_SIZE)
    for _ in range(full):
        yield BLOCK_SIZE
    if last > 0:
        yield last