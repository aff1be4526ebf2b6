from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self, TypeGuard

from mockstream.log import get_logger
from mockstream_http.body import (
    BodyReader,
    ChunkedBodyReader,
    EmptyBodyReader,
    SizedBodyReader,
)
from mockstream_http.exceptions import MalformedRequestError, UnsupportedMethodError

if TYPE_CHECKING:
    from mockstream.buffered import BufferedByteReader
    from mockstream_http.typedef import HTTPHeaders, HTTPMethod


logger = get_logger()

# Must match typedef.HTTPMethod
ALLOWED_HTTP_METHODS: set[HTTPMethod] = {
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "OPTIONS",
    "HEAD",
}

# Requests with these methods never carry a body
BODYLESS_METHODS: set[HTTPMethod] = {"GET", "HEAD"}

_CONTENT_LENGTH_PATTERN = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True, kw_only=True)
class ParserLimits:
    """Upper bounds applied while parsing a request head."""

    """Longest request line or header line, CRLF excluded"""
    max_line_bytes: int = 65536

    """Most header lines accepted in one request"""
    max_headers: int = 100


DEFAULT_LIMITS = ParserLimits()


@dataclass(frozen=True, slots=True, kw_only=True)
class Request:
    """Represents a parsed HTTP/1.1 request."""

    """The HTTP method"""
    method: HTTPMethod

    """The URL path"""
    path: str

    """HTTP version"""
    http_version: str

    """HTTP headers"""
    headers: HTTPHeaders

    """HTTP body, read lazily from the stream"""
    body: BodyReader

    """Address of the remote end"""
    peer_address: tuple[str, int] | None = None

    @classmethod
    def parse(
        cls, reader: BufferedByteReader, *, limits: ParserLimits = DEFAULT_LIMITS
    ) -> Self:
        """Parses a request head from a buffered reader and installs a body reader.

        The body is not read here. Draining `body` consumes exactly the framed
        bytes and leaves anything after them in the reader.
        """
        # 1. Get tokens from first line
        first_line = reader.receive_until(
            delimiter=b"\r\n", max_bytes=limits.max_line_bytes
        )
        tokens = first_line.split(b" ")
        if len(tokens) != 3 or not tokens[2].startswith(b"HTTP/"):  # noqa: PLR2004
            msg = f"Invalid request line {first_line!r}"
            raise MalformedRequestError(msg)

        method, target, version = (token.decode("latin-1") for token in tokens)
        if not cls.verify_http_method(method):
            msg = f"Unsupported HTTP method {method!r}"
            raise UnsupportedMethodError(msg)

        # 2. Get headers, until reaching empty line
        headers: HTTPHeaders = {}
        line = reader.receive_until(delimiter=b"\r\n", max_bytes=limits.max_line_bytes)
        count = 0
        while line:
            count += 1
            if count > limits.max_headers:
                msg = f"More than {limits.max_headers} header lines"
                raise MalformedRequestError(msg)

            header_name, sep, header_val = line.partition(b":")
            # No whitespace is allowed between the field name and the colon
            if (
                not sep
                or not header_name.strip()
                or header_name != header_name.rstrip()
            ):
                msg = f"Invalid header line {line!r}"
                raise MalformedRequestError(msg)

            add_header(
                headers,
                header_name.decode("latin-1"),
                header_val.decode("latin-1"),
            )
            line = reader.receive_until(
                delimiter=b"\r\n", max_bytes=limits.max_line_bytes
            )

        # 3. Pick a body reader from method and headers
        body = body_reader_for(
            method, headers, reader, max_line_bytes=limits.max_line_bytes
        )
        logger.debug(
            "Parsed request head", method=method, path=target, framing=body.framing
        )

        return cls(
            method=method,
            path=target,
            http_version=version,
            headers=headers,
            body=body,
            peer_address=reader.peer_address(),
        )

    @staticmethod
    def verify_http_method(method: str) -> TypeGuard[HTTPMethod]:
        """Verifies that HTTP method is valid."""
        return method in ALLOWED_HTTP_METHODS


def add_header(headers: HTTPHeaders, name: str, value: str) -> None:
    """Adds a header, lower-casing its name and joining repeated ones."""
    header_name = name.strip().lower()
    header_val = value.strip()

    if header_name in headers:
        header_val = headers[header_name] + ", " + header_val

    headers[header_name] = header_val


def body_reader_for(
    method: str,
    headers: HTTPHeaders,
    reader: BufferedByteReader,
    *,
    max_line_bytes: int = DEFAULT_LIMITS.max_line_bytes,
) -> BodyReader:
    """Chooses how the request body is framed.

    GET and HEAD never have a body. Otherwise a chunked transfer-encoding wins
    over content-length, and a request with neither has an empty body.
    """
    if method in BODYLESS_METHODS:
        return EmptyBodyReader()

    if "transfer-encoding" in headers:
        codings = [c.strip().lower() for c in headers["transfer-encoding"].split(",")]
        if codings[-1] != "chunked":
            msg = f"Unsupported transfer-encoding {headers['transfer-encoding']!r}"
            raise MalformedRequestError(msg)
        return ChunkedBodyReader(reader=reader, max_line_bytes=max_line_bytes)

    if "content-length" in headers:
        return SizedBodyReader(
            reader=reader, remaining=parse_content_length(headers["content-length"])
        )

    return EmptyBodyReader()


def parse_content_length(value: str) -> int:
    """Parses a content-length value. Repeated identical values are accepted."""
    values = {v.strip() for v in value.split(",")}
    if len(values) != 1:
        msg = f"Conflicting content-length values {value!r}"
        raise MalformedRequestError(msg)

    content_length = values.pop()
    if not _CONTENT_LENGTH_PATTERN.fullmatch(content_length):
        msg = f"Invalid content-length {value!r}"
        raise MalformedRequestError(msg)

    return int(content_length)
