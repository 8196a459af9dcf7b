"""Block-oriented file transfer server and client with resumable downloads."""

__version__ = "0.1.0"
__all__ = ["netio", "protocol", "server", "client"]