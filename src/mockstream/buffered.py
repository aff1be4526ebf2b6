from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mockstream.exceptions import (
    ClosedResourceError,
    DelimiterNotFoundError,
    EndOfStreamError,
)
from mockstream.protocols import Shutdown

if TYPE_CHECKING:
    from mockstream.protocols import NetworkStream


@dataclass(slots=True, kw_only=True)
class BufferedByteReader:
    """Wraps any network stream to expose buffered reads."""

    """Wrapped network stream"""
    stream: NetworkStream

    """Bytes requested from the stream per read"""
    chunk_size: int = 8192

    """Internal buffer"""
    _buffer: bytearray = field(default_factory=bytearray, init=False, repr=False)

    """Marker for closed resource"""
    _closed: bool = field(default=False, init=False, repr=False)

    def close(self) -> None:
        """Closes the resource and the wrapped stream."""
        self.stream.close(Shutdown.BOTH)
        self._closed = True

    def receive(self, max_bytes: int = 65536) -> bytes:
        """Reads data from the resource. Returns b"" at end of stream."""
        self._check_open()

        if not self._buffer:
            self._fill()

        data = bytes(self._buffer[:max_bytes])
        del self._buffer[:max_bytes]
        return data

    def receive_exactly(self, nbytes: int) -> bytes:
        """Reads exactly the given amount of bytes from the resource."""
        self._check_open()

        while len(self._buffer) < nbytes:
            if not self._fill():
                raise EndOfStreamError("Stream closed before receiving enough data")

        data = bytes(self._buffer[:nbytes])
        del self._buffer[:nbytes]
        return data

    def receive_until(self, *, delimiter: bytes, max_bytes: int) -> bytes:
        """Reads from the resource until delimiter is found, or max bytes are read."""
        self._check_open()

        limit = max_bytes + len(delimiter)
        while (index := self._buffer.find(delimiter, 0, limit)) < 0:
            if len(self._buffer) >= limit:
                msg = f"Delimiter {delimiter!r} was not found within {max_bytes} bytes"
                raise DelimiterNotFoundError(msg)
            if not self._fill():
                raise EndOfStreamError("Stream closed before delimiter found")

        data = bytes(self._buffer[:index])
        del self._buffer[: index + len(delimiter)]
        return data

    def push_back(self, data: bytes) -> None:
        """Puts data back at the front of the buffer, to be received again."""
        self._buffer[:0] = data

    def peer_address(self) -> tuple[str, int]:
        """Address of the remote end of the wrapped stream."""
        return self.stream.peer_address()

    @property
    def buffer(self) -> bytes:
        """Returns the contents of the internal buffer."""
        return bytes(self._buffer)

    def _fill(self) -> int:
        """Reads one chunk from the stream into the buffer."""
        chunk = bytearray(self.chunk_size)
        nbytes = self.stream.readinto(chunk)
        self._buffer += chunk[:nbytes]
        return nbytes

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedResourceError("Cannot receive from closed resource")
