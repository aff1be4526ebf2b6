"""Shared test fixtures for mockstream-http."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import pytest

from mockstream_http.h11_parser import parse_with_h11
from mockstream_http.request import Request

if TYPE_CHECKING:
    from mockstream.buffered import BufferedByteReader


class RequestParser(Protocol):
    """Anything that turns a buffered reader into a Request."""

    def __call__(self, reader: BufferedByteReader, /) -> Request: ...


PARSERS: dict[str, RequestParser] = {
    "reference": Request.parse,
    "h11": parse_with_h11,
}


@pytest.fixture(name="parser", params=list(PARSERS))
def _parser(request: pytest.FixtureRequest) -> RequestParser:
    """Each request parser that must honour body framing."""
    return PARSERS[request.param]


def read_to_string(request: Request) -> str:
    """Drains the request body and decodes it."""
    return request.body.read_to_string()
