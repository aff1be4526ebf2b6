"""This example parses a request from a mock stream and echoes its body back."""

from mockstream import BufferedByteReader, MockStream
from mockstream.log import configure_logging, get_logger
from mockstream_http import Request

logger = get_logger()


def echo_handler(stream: MockStream) -> None:
    """Reads one request and writes its body back as a response."""
    buffered = BufferedByteReader(stream=stream)
    try:
        request = Request.parse(buffered)
        body = request.body.read_to_end()
        stream.write(b"HTTP/1.1 200 OK\r\n")
        stream.write(f"content-length: {len(body)}\r\n\r\n".encode())
        stream.write(body)
        stream.flush()
    finally:
        buffered.close()


if __name__ == "__main__":
    configure_logging("DEBUG")
    mock = MockStream.with_responses(
        [
            b"POST /echo HTTP/1.1\r\nHost: example.domain\r\n",
            b"Content-Length: 5\r\n\r\nhel",
            b"lo",
        ]
    )
    echo_handler(mock)
    logger.info("Response written", response=mock.written, closed=mock.is_closed)
