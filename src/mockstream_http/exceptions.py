class HTTPParseError(Exception):
    """Base for errors raised while parsing an HTTP message."""


class MalformedRequestError(HTTPParseError):
    """Raised when request bytes do not form a valid HTTP/1.1 request."""


class UnsupportedMethodError(MalformedRequestError):
    """Raised when the request method is not one we accept."""
