from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

from typing_extensions import override

from mockstream.exceptions import InjectedIOError
from mockstream.log import get_logger
from mockstream.protocols import Shutdown

if TYPE_CHECKING:
    from collections.abc import Buffer, Iterable

logger = get_logger()

MOCK_PEER_ADDRESS: tuple[str, int] = ("127.0.0.1", 1337)


@dataclass(slots=True, eq=False, kw_only=True)
class MockStream:
    """Scripted, in-memory stand-in for a network connection.

    Reads are served from a script of segments. The first segment is current;
    the rest are queued and only take over once the current one is drained,
    the way successive TCP segments arrive. Everything written is captured in
    `write_buffer`. Failures happen only when armed through `error_on_read` and
    `error_on_write`, and timeouts are recorded but never enforced.

    Two mock streams compare equal when their unread current segment and their
    written bytes are equal. Queued segments, flags and timeouts are ignored.
    """

    """Segment currently being read"""
    current: bytes = b""

    """Segments served, in order, after the current one is drained"""
    next_reads: deque[bytes] = field(default_factory=deque)

    """Everything written to the stream"""
    write_buffer: bytearray = field(default_factory=bytearray)

    """Fail every read while set"""
    error_on_read: bool = False

    """Fail every write while set"""
    error_on_write: bool = False

    """Last requested read timeout, in seconds"""
    read_timeout: float | None = None

    """Last requested write timeout, in seconds"""
    write_timeout: float | None = None

    """Direction passed to the most recent close"""
    last_shutdown: Shutdown | None = None

    """Read cursor into the current segment"""
    _position: int = field(default=0, init=False, repr=False)

    """Marker for closed stream"""
    _closed: bool = field(default=False, init=False)

    @classmethod
    def new(cls) -> Self:
        """Creates a mock stream with nothing to read."""
        return cls.with_input(b"")

    @classmethod
    def with_input(cls, data: bytes) -> Self:
        """Creates a mock stream serving a single segment."""
        return cls.with_responses([data])

    @classmethod
    def with_responses(cls, responses: Iterable[bytes]) -> Self:
        """Creates a mock stream serving the given segments in order."""
        segments = deque(bytes(response) for response in responses)
        if not segments:
            raise ValueError("A mock stream needs at least one read segment")

        return cls(current=segments.popleft(), next_reads=segments)

    def clone(self) -> MockStream:
        """Creates an independent copy of this stream, including its state."""
        return copy.deepcopy(self)

    def readinto(self, buffer: Buffer, /) -> int:
        """Reads from the current segment into buffer.

        Returns 0 only once every segment of the script has been drained.
        """
        if self.error_on_read:
            logger.debug("Injected read failure")
            raise InjectedIOError("mock error")

        self._advance_if_drained()
        with memoryview(buffer) as view, view.cast("B") as target:
            nbytes = min(len(target), len(self.current) - self._position)
            target[:nbytes] = self.current[self._position : self._position + nbytes]

        self._position += nbytes
        self._advance_if_drained()
        return nbytes

    def read(self, size: int = -1) -> bytes:
        """Reads up to size bytes, or the whole remaining script if negative."""
        if size < 0:
            data = bytearray()
            while chunk := self.read(8192):
                data += chunk
            return bytes(data)

        buffer = bytearray(size)
        nbytes = self.readinto(buffer)
        return bytes(buffer[:nbytes])

    def write(self, data: Buffer, /) -> int:
        """Appends data to the write buffer. Never writes partially."""
        if self.error_on_write:
            logger.debug("Injected write failure")
            raise InjectedIOError("mock error")

        with memoryview(data) as view:
            self.write_buffer += view
            return view.nbytes

    def flush(self) -> None:
        """Nothing to flush, writes are visible immediately."""

    def close(self, how: Shutdown = Shutdown.BOTH) -> None:
        """Marks the stream as closed, whatever the direction."""
        logger.debug("Closing mock stream", how=how.name)
        self._closed = True
        self.last_shutdown = how

    def peer_address(self) -> tuple[str, int]:
        """Fixed loopback address of the pretend peer."""
        return MOCK_PEER_ADDRESS

    def set_read_timeout(self, timeout: float | None, /) -> None:
        """Records the requested read timeout."""
        logger.debug("Read timeout set", timeout=timeout)
        self.read_timeout = timeout

    def set_write_timeout(self, timeout: float | None, /) -> None:
        """Records the requested write timeout."""
        logger.debug("Write timeout set", timeout=timeout)
        self.write_timeout = timeout

    @property
    def is_closed(self) -> bool:
        """If the stream has been closed. Stays true once set."""
        return self._closed

    @property
    def unread(self) -> bytes:
        """Bytes left in the current segment."""
        return self.current[self._position :]

    @property
    def written(self) -> bytes:
        """Contents of the write buffer."""
        return bytes(self.write_buffer)

    @property
    def pending_segments(self) -> int:
        """Number of segments queued behind the current one."""
        return len(self.next_reads)

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MockStream):
            return NotImplemented
        return self.unread == other.unread and self.write_buffer == other.write_buffer

    def _advance_if_drained(self) -> None:
        """Moves to the next queued segment once the current one is used up."""
        while self._position >= len(self.current) and self.next_reads:
            self.current = self.next_reads.popleft()
            self._position = 0
            logger.debug(
                "Advanced to next read segment",
                size=len(self.current),
                remaining=len(self.next_reads),
            )
