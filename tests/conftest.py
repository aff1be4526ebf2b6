"""Shared test fixtures for mockstream."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

import mockstream  # noqa: F401
import mockstream_http  # noqa: F401
from mockstream.buffered import BufferedByteReader
from mockstream.log import configure_logging
from mockstream.mock import MockStream

if TYPE_CHECKING:
    from collections.abc import Callable

configure_logging("DEBUG")


@pytest.fixture
def mock_stream() -> MockStream:
    """Provide a mock stream with nothing to read."""
    return MockStream.new()


@pytest.fixture
def buffered_from() -> Callable[..., BufferedByteReader]:
    """Wrap a mock stream scripted with the given segments in a buffered reader."""

    def _make(*segments: bytes, chunk_size: int = 8192) -> BufferedByteReader:
        return BufferedByteReader(
            stream=MockStream.with_responses(segments), chunk_size=chunk_size
        )

    return _make
