"""Mockstream HTTP package."""

__version__ = "0.1.0"

from mockstream_http.h11_parser import parse_with_h11
from mockstream_http.request import ParserLimits, Request

__all__ = [
    "ParserLimits",
    "Request",
    "parse_with_h11",
]
