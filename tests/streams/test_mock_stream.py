"""Tests for the scripted mock network stream."""

import pytest

from mockstream.exceptions import InjectedIOError
from mockstream.log import get_logger
from mockstream.mock import MOCK_PEER_ADDRESS, MockStream
from mockstream.protocols import NetworkStream, Shutdown, TimeoutStream

logger = get_logger(__name__)


def drain(stream: MockStream, chunk_size: int) -> bytes:
    """Reads the stream to exhaustion, chunk_size bytes at a time."""
    data = bytearray()
    buffer = bytearray(chunk_size)
    while nbytes := stream.readinto(buffer):
        data += buffer[:nbytes]
    return bytes(data)


class TestConstruction:
    def test_new_has_nothing_to_read(self) -> None:
        stream = MockStream.new()
        assert stream.readinto(bytearray(16)) == 0
        assert stream.written == b""
        assert not stream.is_closed

    def test_new_equals_empty_input(self) -> None:
        assert MockStream.new() == MockStream.with_input(b"")

    def test_with_input_single_segment(self) -> None:
        stream = MockStream.with_input(b"hello")
        assert stream.unread == b"hello"
        assert stream.pending_segments == 0

    def test_with_responses_queues_the_rest(self) -> None:
        stream = MockStream.with_responses([b"one", b"two", b"three"])
        assert stream.unread == b"one"
        assert stream.pending_segments == 2

    def test_with_responses_accepts_any_iterable(self) -> None:
        stream = MockStream.with_responses(part for part in (b"a", b"b"))
        assert stream.read() == b"ab"

    def test_with_responses_empty_raises(self) -> None:
        with pytest.raises(ValueError, match="at least one"):
            MockStream.with_responses([])

    def test_satisfies_stream_protocols(self) -> None:
        stream = MockStream.new()
        assert isinstance(stream, NetworkStream)
        assert isinstance(stream, TimeoutStream)


class TestRead:
    def test_read_copies_what_fits(self) -> None:
        stream = MockStream.with_input(b"hello, world")
        buffer = bytearray(5)
        assert stream.readinto(buffer) == 5
        assert buffer == b"hello"
        assert stream.unread == b", world"

    def test_read_stops_at_segment_end(self) -> None:
        stream = MockStream.with_responses([b"abc", b"def"])
        buffer = bytearray(10)
        assert stream.readinto(buffer) == 3
        assert buffer[:3] == b"abc"

    def test_advances_only_once_drained(self) -> None:
        stream = MockStream.with_responses([b"abcd", b"efgh"])
        stream.readinto(bytearray(2))
        assert stream.unread == b"cd"
        assert stream.pending_segments == 1

        stream.readinto(bytearray(2))
        assert stream.unread == b"efgh"
        assert stream.pending_segments == 0

    def test_exhausted_script_reads_zero(self) -> None:
        stream = MockStream.with_responses([b"ab", b"cd"])
        assert stream.read(2) == b"ab"
        assert stream.read(2) == b"cd"
        assert stream.readinto(bytearray(4)) == 0
        assert stream.readinto(bytearray(4)) == 0

    def test_empty_segments_do_not_end_the_stream(self) -> None:
        stream = MockStream.with_responses([b"", b"ab", b"", b"cd"])
        assert drain(stream, 4) == b"abcd"

    def test_read_into_memoryview(self) -> None:
        stream = MockStream.with_input(b"xyz")
        target = bytearray(b"...")
        assert stream.readinto(memoryview(target)[1:]) == 2
        assert target == b".xy"

    @pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 64])
    def test_segmentation_is_transparent(self, chunk_size: int) -> None:
        segments = [b"GET / HTT", b"P/1.1\r\n", b"Host: a\r", b"\n\r\n"]
        stream = MockStream.with_responses(segments)
        assert drain(stream, chunk_size) == b"".join(segments)

    def test_read_all(self) -> None:
        stream = MockStream.with_responses([b"a" * 10000, b"b" * 10])
        assert stream.read() == b"a" * 10000 + b"b" * 10

    def test_read_zero_bytes(self) -> None:
        stream = MockStream.with_input(b"abc")
        assert stream.read(0) == b""
        assert stream.unread == b"abc"


class TestWrite:
    def test_write_appends(self) -> None:
        stream = MockStream.new()
        assert stream.write(b"HTTP/1.1 200 OK\r\n") == 17
        assert stream.write(b"\r\n") == 2
        assert stream.written == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_write_fidelity(self) -> None:
        stream = MockStream.new()
        parts = [b"a", b"", b"bc", bytearray(b"def"), memoryview(b"ghij")]
        for part in parts:
            stream.write(part)
        assert stream.written == b"abcdefghij"

    def test_flush_is_noop(self) -> None:
        stream = MockStream.new()
        stream.write(b"data")
        stream.flush()
        assert stream.written == b"data"


class TestErrorInjection:
    def test_read_error(self) -> None:
        stream = MockStream.with_input(b"abc")
        stream.error_on_read = True
        with pytest.raises(InjectedIOError, match="mock error"):
            stream.readinto(bytearray(1))
        assert stream.unread == b"abc"

    def test_read_error_is_an_os_error(self) -> None:
        stream = MockStream.new()
        stream.error_on_read = True
        with pytest.raises(OSError):  # noqa: PT011
            stream.readinto(bytearray(0))

    def test_write_error_leaves_sink_alone(self) -> None:
        stream = MockStream.new()
        stream.write(b"before")
        stream.error_on_write = True
        with pytest.raises(InjectedIOError):
            stream.write(b"after")
        assert stream.written == b"before"

    def test_read_error_does_not_affect_writes(self) -> None:
        stream = MockStream.new()
        stream.error_on_read = True
        assert stream.write(b"ok") == 2

    def test_write_error_does_not_affect_reads(self) -> None:
        stream = MockStream.with_input(b"ok")
        stream.error_on_write = True
        assert stream.read() == b"ok"

    def test_disarm_restores_behaviour(self) -> None:
        stream = MockStream.with_input(b"abc")
        stream.error_on_read = True
        stream.error_on_write = True
        with pytest.raises(InjectedIOError):
            stream.read(1)

        stream.error_on_read = False
        stream.error_on_write = False
        assert stream.read(1) == b"a"
        assert stream.write(b"x") == 1


class TestClose:
    @pytest.mark.parametrize("how", list(Shutdown))
    def test_close_any_direction(self, how: Shutdown) -> None:
        stream = MockStream.new()
        stream.close(how)
        assert stream.is_closed
        assert stream.last_shutdown is how

    def test_close_defaults_to_both(self) -> None:
        stream = MockStream.new()
        stream.close()
        assert stream.last_shutdown is Shutdown.BOTH

    def test_close_is_monotone(self) -> None:
        stream = MockStream.with_input(b"abc")
        stream.close(Shutdown.WRITE)
        stream.close(Shutdown.READ)
        stream.write(b"x")
        stream.read()
        assert stream.is_closed


class TestPeerAndTimeouts:
    def test_peer_address_is_fixed(self) -> None:
        stream = MockStream.with_input(b"anything")
        assert stream.peer_address() == MOCK_PEER_ADDRESS == ("127.0.0.1", 1337)
        stream.read()
        assert stream.peer_address() == MOCK_PEER_ADDRESS

    def test_timeouts_recorded(self) -> None:
        stream = MockStream.new()
        assert stream.read_timeout is None
        assert stream.write_timeout is None

        stream.set_read_timeout(1.5)
        stream.set_write_timeout(0.25)
        assert stream.read_timeout == 1.5
        assert stream.write_timeout == 0.25

        stream.set_read_timeout(None)
        assert stream.read_timeout is None
        assert stream.write_timeout == 0.25

    def test_timeouts_do_not_block(self) -> None:
        stream = MockStream.new()
        stream.set_read_timeout(0.0)
        assert stream.readinto(bytearray(8)) == 0


class TestEquality:
    def test_equal_on_unread_and_written(self) -> None:
        left = MockStream.with_input(b"xxabc")
        left.read(2)
        right = MockStream.with_input(b"abc")
        assert left == right

        left.write(b"out")
        assert left != right
        right.write(b"out")
        assert left == right

    def test_queued_segments_ignored(self) -> None:
        left = MockStream.with_responses([b"abc", b"more"])
        right = MockStream.with_input(b"abc")
        assert left == right

    def test_flags_and_timeouts_ignored(self) -> None:
        left = MockStream.with_input(b"abc")
        left.error_on_read = True
        left.error_on_write = True
        left.set_read_timeout(3)
        left.close()
        assert left == MockStream.with_input(b"abc")

    def test_not_equal_to_other_types(self) -> None:
        assert MockStream.new() != b""

    def test_unhashable(self) -> None:
        with pytest.raises(TypeError):
            hash(MockStream.new())


class TestClone:
    def test_clone_is_independent(self) -> None:
        original = MockStream.with_responses([b"abc", b"def"])
        original.read(1)
        original.write(b"w")

        cloned = original.clone()
        assert cloned == original
        assert cloned.pending_segments == 1

        cloned.read()
        cloned.write(b"more")
        assert original.unread == b"bc"
        assert original.pending_segments == 1
        assert original.written == b"w"
