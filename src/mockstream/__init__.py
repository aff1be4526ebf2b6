"""Mockstream package."""

__version__ = "0.1.0"

from mockstream.buffered import BufferedByteReader
from mockstream.mock import MOCK_PEER_ADDRESS, MockStream
from mockstream.protocols import Shutdown

__all__ = [
    "MOCK_PEER_ADDRESS",
    "BufferedByteReader",
    "MockStream",
    "Shutdown",
]
