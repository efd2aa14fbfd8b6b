"""HTTP Input/Output operations."""

import logging
import socket
import urllib.parse
from typing import Iterable, Optional, Tuple

from filebrowser.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from filebrowser.domain.correlation_id import (
    CorrelationLoggerAdapter,
    get_correlation_id,
    set_correlation_id,
)
from filebrowser.domain.errors import StreamFailure
from filebrowser.domain.http_types import HttpRequest, HttpResponse
from filebrowser.pipeline.validation import RequestEntityTooLarge

IO_LOGGER = CorrelationLoggerAdapter(logging.getLogger("filebrowser.pipeline.io"), {})


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        if ": " in line:
            name, value = line.split(": ", 1)
            parsed[name.lower()] = value
    return parsed


def parse_query(query_string: str) -> dict[str, str]:
    """Decode a query string keeping the first value of repeated keys."""
    query: dict[str, str] = {}
    for name, value in urllib.parse.parse_qsl(query_string, keep_blank_values=True):
        query.setdefault(name, value)
    return query


def parse_request_line(request_line: str) -> Tuple[str, str, dict[str, str]]:
    """Parse the HTTP method, decoded path and query from the request line."""
    try:
        method, target, _ = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc

    parsed_target = urllib.parse.urlsplit(target)
    path = urllib.parse.unquote(parsed_target.path)
    return method, path, parse_query(parsed_target.query)


def determine_content_length(method: str, headers: dict[str, str]) -> int:
    """Validate and return the declared Content-Length for the request."""
    header_value = headers.get("content-length")
    if method == "POST" and header_value is None:
        raise ValueError("Missing Content-Length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    if content_length > MAX_BODY_BYTES:
        raise RequestEntityTooLarge
    return content_length


def receive_request(
    client_socket: socket.socket, buffer: bytes
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available."""
    while HEADER_DELIMITER not in buffer:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        buffer += chunk

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode().split("\r\n")
    method, path, query = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    incoming_correlation_id = headers.get("x-request-id")
    if incoming_correlation_id:
        set_correlation_id(incoming_correlation_id)

    content_length = determine_content_length(method, headers)

    while len(remainder) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        remainder += chunk
        if len(remainder) > MAX_BODY_BYTES:
            raise RequestEntityTooLarge

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    IO_LOGGER.debug("Parsed request", extra={"method": method, "route": path})
    return HttpRequest(method, path, headers, body, query), leftover


def _send_streamed_body(
    client_socket: socket.socket, body_iter: Iterable[bytes], chunked: bool
) -> int:
    """Write the body iterator, chunk-framed or raw, returning the byte count.

    The iterator is always closed, so a client disconnect tears down open
    files and archives. A failure raised by the iterator itself surfaces as
    ``StreamFailure`` because the status line is already on the wire.
    """
    body_iter = iter(body_iter)
    sent = 0
    try:
        while True:
            try:
                chunk = next(body_iter)
            except StopIteration:
                break
            except Exception as exc:  # pylint: disable=broad-except
                raise StreamFailure(type(exc).__name__) from exc
            if not chunk:
                continue
            if chunked:
                client_socket.sendall(f"{len(chunk):X}\r\n".encode())
                client_socket.sendall(chunk)
                client_socket.sendall(b"\r\n")
            else:
                client_socket.sendall(chunk)
            sent += len(chunk)
        if chunked:
            client_socket.sendall(b"0\r\n\r\n")
    finally:
        close = getattr(body_iter, "close", None)
        if close is not None:
            close()
    return sent


def send_response(client_socket: socket.socket, response: HttpResponse) -> None:
    """Serialize and send the HTTP response over the socket.

    A streamed body without chunking must carry its own Content-Length header.
    """
    headers = dict(response.headers)

    correlation_id = get_correlation_id()
    if correlation_id:
        headers["X-Request-ID"] = correlation_id

    if response.use_chunked:
        headers["Transfer-Encoding"] = "chunked"
    elif response.body_iter is None:
        headers["Content-Length"] = str(len(response.body))
    if response.close_connection:
        headers["Connection"] = "close"
    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    header_block = "\r\n".join(header_lines).encode() + b"\r\n\r\n"
    if response.body_iter is not None:
        client_socket.sendall(header_block)
        bytes_out = _send_streamed_body(
            client_socket, response.body_iter, response.use_chunked
        )
    else:
        client_socket.sendall(header_block + response.body)
        bytes_out = len(response.body)

    IO_LOGGER.debug(
        "Sent response",
        extra={"status_code": response.status_line, "bytes_out": bytes_out},
    )
