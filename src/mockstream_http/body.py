from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from typing_extensions import override

from mockstream_http.exceptions import MalformedRequestError

if TYPE_CHECKING:
    from mockstream.buffered import BufferedByteReader
    from mockstream_http.typedef import BodyFraming

_CHUNK_SIZE_PATTERN = re.compile(rb"[0-9A-Fa-f]+")


class BodyReader(ABC):
    """Sequential byte source for a request body."""

    """How the body is delimited on the wire"""
    framing: BodyFraming

    def read(self, size: int = -1) -> bytes:
        """Reads up to size bytes of the body, or all that is left if negative."""
        if size < 0:
            return self.read_to_end()
        if size == 0:
            return b""
        return self._read_some(size)

    def read_to_end(self) -> bytes:
        """Drains the body."""
        data = bytearray()
        while chunk := self._read_some(8192):
            data += chunk
        return bytes(data)

    def read_to_string(self, encoding: str = "utf-8") -> str:
        """Drains the body and decodes it."""
        return self.read_to_end().decode(encoding)

    @abstractmethod
    def _read_some(self, size: int) -> bytes:
        """Reads at most size bytes. Returns b"" once the body is drained."""


class EmptyBodyReader(BodyReader):
    """Body of a request that carries none."""

    framing = "empty"

    @override
    def _read_some(self, size: int) -> bytes:
        return b""

    @override
    def __repr__(self) -> str:
        return "EmptyBodyReader()"


@dataclass(kw_only=True)
class SizedBodyReader(BodyReader):
    """Body delimited by a content-length."""

    framing = "sized"

    """Reader positioned at the start of the body"""
    reader: BufferedByteReader = field(repr=False)

    """Bytes of body not yet read"""
    remaining: int

    @override
    def _read_some(self, size: int) -> bytes:
        if self.remaining == 0:
            return b""

        data = self.reader.receive_exactly(min(size, self.remaining))
        self.remaining -= len(data)
        return data


@dataclass(kw_only=True)
class ChunkedBodyReader(BodyReader):
    """Body sent with chunked transfer coding."""

    framing = "chunked"

    """Reader positioned at the first chunk size line"""
    reader: BufferedByteReader = field(repr=False)

    """Longest size or trailer line accepted"""
    max_line_bytes: int = 65536

    """Bytes of the current chunk not yet read"""
    _chunk_remaining: int = field(default=0, init=False)

    """Set once the last chunk and trailers have been consumed"""
    _done: bool = field(default=False, init=False)

    @override
    def _read_some(self, size: int) -> bytes:
        if self._done:
            return b""

        if self._chunk_remaining == 0:
            self._chunk_remaining = self._read_chunk_size()
            if self._chunk_remaining == 0:
                self._skip_trailers()
                self._done = True
                return b""

        data = self.reader.receive_exactly(min(size, self._chunk_remaining))
        self._chunk_remaining -= len(data)
        if self._chunk_remaining == 0 and self.reader.receive_exactly(2) != b"\r\n":
            raise MalformedRequestError("Chunk data is not followed by CRLF")

        return data

    def _read_chunk_size(self) -> int:
        line = self.reader.receive_until(
            delimiter=b"\r\n", max_bytes=self.max_line_bytes
        )
        # Chunk extensions are ignored
        size = line.split(b";", 1)[0].strip()
        if not _CHUNK_SIZE_PATTERN.fullmatch(size):
            msg = f"Invalid chunk size line {line!r}"
            raise MalformedRequestError(msg)

        return int(size, 16)

    def _skip_trailers(self) -> None:
        line = self.reader.receive_until(
            delimiter=b"\r\n", max_bytes=self.max_line_bytes
        )
        while line:
            line = self.reader.receive_until(
                delimiter=b"\r\n", max_bytes=self.max_line_bytes
            )
