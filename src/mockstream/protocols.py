import socket
from enum import IntEnum
from typing import Protocol, runtime_checkable

from typing_extensions import Buffer


class Shutdown(IntEnum):
    """Direction of a connection shutdown, mirroring the socket constants."""

    READ = socket.SHUT_RD
    WRITE = socket.SHUT_WR
    BOTH = socket.SHUT_RDWR


@runtime_checkable
class NetworkStream(Protocol):
    """Capability set a transport stream provides to the HTTP layer."""

    def readinto(self, buffer: Buffer, /) -> int:
        """Reads into buffer, returning 0 only at end of stream."""

    def write(self, data: Buffer, /) -> int:
        """Writes data, returning the number of bytes written."""

    def flush(self) -> None:
        """Flushes pending writes."""

    def close(self, how: Shutdown = Shutdown.BOTH) -> None:
        """Shuts down one or both directions of the stream."""

    def peer_address(self) -> tuple[str, int]:
        """Address of the remote end."""


@runtime_checkable
class TimeoutStream(NetworkStream, Protocol):
    """Network stream that accepts read and write timeouts."""

    def set_read_timeout(self, timeout: float | None, /) -> None:
        """Sets read timeout in seconds. None disables it."""

    def set_write_timeout(self, timeout: float | None, /) -> None:
        """Sets write timeout in seconds. None disables it."""
