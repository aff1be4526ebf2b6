class InjectedIOError(OSError):
    """Raised by a mock stream when reads or writes are armed to fail."""


class ClosedResourceError(Exception):
    """Thrown when the relevant stream has been closed."""


class EndOfStreamError(Exception):
    """Thrown when the wrapped stream has no more data to read."""


class DelimiterNotFoundError(Exception):
    """Raised if delimiter is not found within the max read."""
