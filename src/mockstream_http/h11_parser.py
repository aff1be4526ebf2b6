"""Drives the h11 state machine through a buffered reader.

h11 does not do I/O itself: bytes pulled from the reader are fed into an
`h11.Connection` until it produces the events we need. The result has the same
shape as `Request.parse`, so both parsers can be checked against the same
streams.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from typing_extensions import override

import h11

from mockstream.exceptions import EndOfStreamError
from mockstream.log import get_logger
from mockstream_http.body import BodyReader, EmptyBodyReader
from mockstream_http.exceptions import MalformedRequestError, UnsupportedMethodError
from mockstream_http.request import (
    BODYLESS_METHODS,
    DEFAULT_LIMITS,
    ParserLimits,
    Request,
    add_header,
)

if TYPE_CHECKING:
    from mockstream.buffered import BufferedByteReader
    from mockstream_http.typedef import BodyFraming, HTTPHeaders

logger = get_logger()


@dataclass(slots=True, kw_only=True)
class H11Feeder:
    """Pulls events out of an h11 connection, reading more bytes when needed."""

    """Server side h11 connection"""
    connection: h11.Connection

    """Source of raw request bytes"""
    reader: BufferedByteReader

    """Set once end of stream has been passed on to h11"""
    _eof: bool = field(default=False, init=False)

    def next_event(self) -> h11.Event | type[h11.PAUSED]:
        """Returns the next h11 event, reading from the stream until one is ready."""
        while True:
            try:
                event = self.connection.next_event()
            except h11.RemoteProtocolError as e:
                if self._eof:
                    raise EndOfStreamError("Stream closed mid-message") from e
                raise MalformedRequestError(str(e)) from e

            if event is not h11.NEED_DATA:
                logger.debug("h11 event", event_type=type(event).__name__)
                return event

            data = self.reader.receive()
            self._eof = not data
            # An empty chunk tells h11 the peer has closed
            self.connection.receive_data(data)

    def return_trailing_data(self) -> None:
        """Hands bytes h11 holds past the current message back to the reader."""
        data, _ = self.connection.trailing_data
        self.reader.push_back(data)


@dataclass(kw_only=True)
class H11BodyReader(BodyReader):
    """Body read from h11 Data events until EndOfMessage."""

    """How h11 frames this body"""
    framing: BodyFraming

    """Event source positioned after the request head"""
    feeder: H11Feeder = field(repr=False)

    """Data received from h11 but not yet read"""
    _pending: bytearray = field(default_factory=bytearray, init=False, repr=False)

    """Set once EndOfMessage has been seen"""
    _done: bool = field(default=False, init=False)

    @override
    def _read_some(self, size: int) -> bytes:
        while not self._pending and not self._done:
            event = self.feeder.next_event()
            if isinstance(event, h11.Data):
                self._pending += event.data
            elif isinstance(event, h11.EndOfMessage):
                self._done = True
                self.feeder.return_trailing_data()
            else:
                msg = f"Unexpected h11 event {event!r} inside request body"
                raise MalformedRequestError(msg)

        data = bytes(self._pending[:size])
        del self._pending[:size]
        return data


def parse_with_h11(
    reader: BufferedByteReader, *, limits: ParserLimits = DEFAULT_LIMITS
) -> Request:
    """Parses a request head with h11 and installs a body reader on top of it."""
    feeder = H11Feeder(
        connection=h11.Connection(
            our_role=h11.SERVER, max_incomplete_event_size=limits.max_line_bytes
        ),
        reader=reader,
    )

    event = feeder.next_event()
    if isinstance(event, h11.ConnectionClosed):
        raise EndOfStreamError("Stream closed before a request was received")
    if not isinstance(event, h11.Request):
        msg = f"Expected a request, got {event!r}"
        raise MalformedRequestError(msg)

    method = event.method.decode("latin-1")
    if not Request.verify_http_method(method):
        msg = f"Unsupported HTTP method {method!r}"
        raise UnsupportedMethodError(msg)

    if len(event.headers) > limits.max_headers:
        msg = f"More than {limits.max_headers} header lines"
        raise MalformedRequestError(msg)

    headers: HTTPHeaders = {}
    for name, value in event.headers:
        add_header(headers, name.decode("latin-1"), value.decode("latin-1"))

    body: BodyReader
    if method in BODYLESS_METHODS:
        body = EmptyBodyReader()
        feeder.return_trailing_data()
    else:
        body = H11BodyReader(framing=_framing_of(headers), feeder=feeder)

    logger.debug(
        "Parsed request head with h11",
        method=method,
        path=event.target.decode("latin-1"),
        framing=body.framing,
    )

    return Request(
        method=method,
        path=event.target.decode("latin-1"),
        http_version=f"HTTP/{event.http_version.decode('ascii')}",
        headers=headers,
        body=body,
        peer_address=reader.peer_address(),
    )


def _framing_of(headers: HTTPHeaders) -> BodyFraming:
    if "transfer-encoding" in headers:
        return "chunked"
    if "content-length" in headers:
        return "sized"
    return "empty"
