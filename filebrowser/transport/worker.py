"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
from typing import Optional

from filebrowser.bootstrap.config import ALLOWED_METHODS, MAX_BODY_BYTES, SECURITY_HEADERS
from filebrowser.domain.correlation_id import (
    CorrelationLoggerAdapter,
    clear_correlation_id,
    generate_correlation_id,
    set_correlation_id,
)
from filebrowser.domain.errors import StreamFailure
from filebrowser.domain.http_types import HttpRequest, HttpResponse
from filebrowser.domain.response_builders import (
    bad_request_response,
    draining_response,
    entity_too_large_response,
)
from filebrowser.pipeline.io import receive_request, send_response
from filebrowser.pipeline.router import route_request
from filebrowser.pipeline.validation import RequestEntityTooLarge, validate_request
from filebrowser.transport.context import WorkerContext

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.transport.worker"), {}
)


def _read_request(
    client_socket: socket.socket, buffer: bytes, client_addr_str: str
) -> tuple[Optional[HttpRequest], bytes]:
    """Read one request, answering framing errors directly.

    Returns ``(None, b"")`` whenever the connection should end.
    """
    try:
        return receive_request(client_socket, buffer)
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request body size exceeded limit",
            extra={"event": "body_size_exceeded", "client": client_addr_str},
        )
        send_response(client_socket, entity_too_large_response(SECURITY_HEADERS))
    except ValueError:
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr_str},
        )
        send_response(client_socket, bad_request_response(None, SECURITY_HEADERS))
    return None, b""


def _process_request(
    request: HttpRequest, context: WorkerContext, client_socket: socket.socket
) -> HttpResponse:
    """Validate, route and answer a request, returning what was sent."""
    response = validate_request(
        request, ALLOWED_METHODS, MAX_BODY_BYTES, SECURITY_HEADERS
    )
    if response is None:
        response = route_request(request, context)
    send_response(client_socket, response)
    return response


def _close_socket(client_socket: socket.socket) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    """Process requests on a client socket until the connection is closed."""
    buffer = b""
    current_thread = threading.current_thread()
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    lifecycle = context.lifecycle
    if lifecycle is not None:
        lifecycle.register_worker(current_thread)
    if context.socket_timeout is not None:
        client_socket.settimeout(context.socket_timeout)

    try:
        while True:
            set_correlation_id(generate_correlation_id())
            WORKER_LOGGER.debug(
                "Request processing started",
                extra={"event": "request_started", "client": client_addr_str},
            )

            if lifecycle is not None and lifecycle.is_draining():
                send_response(client_socket, draining_response(SECURITY_HEADERS))
                break

            request, buffer = _read_request(client_socket, buffer, client_addr_str)
            if request is None:
                break

            WORKER_LOGGER.debug(
                "Request line parsed",
                extra={
                    "event": "request_line_parsed",
                    "method": request.method,
                    "route": request.path,
                },
            )
            response = _process_request(request, context, client_socket)
            WORKER_LOGGER.debug(
                "Request processing complete",
                extra={
                    "event": "request_complete",
                    "client": client_addr_str,
                    "status_code": response.status_line.split(" ", 2)[1],
                },
            )
            clear_correlation_id()
            if response.close_connection:
                break
    except StreamFailure as failure:
        # Headers are already sent; dropping the connection is the only signal left.
        WORKER_LOGGER.error(
            "Response stream aborted",
            extra={
                "event": "stream_aborted",
                "client": client_addr_str,
                "error_type": str(failure),
            },
            exc_info=failure.__cause__ is not None,
        )
    except (
        ConnectionError,
        TimeoutError,
        OSError,
        UnicodeDecodeError,
    ) as error:
        WORKER_LOGGER.error(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
            exc_info=True,
        )
    finally:
        if lifecycle is not None:
            lifecycle.cleanup_worker(current_thread)
        _close_socket(client_socket)
        WORKER_LOGGER.debug(
            "Socket closed",
            extra={"event": "socket_closed", "client": client_addr_str},
        )
        clear_correlation_id()
