"""Listening socket creation and TLS configuration."""

import logging
import socket
import ssl
import sys

from filebrowser.bootstrap.config import ServerConfig
from filebrowser.domain.correlation_id import CorrelationLoggerAdapter

SOCKET_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.bootstrap.socket"), {}
)

ACCEPT_POLL_SECONDS = 0.5


def create_server_socket(config: ServerConfig) -> socket.socket:
    """Bind the listener, wrapping it in TLS when certificates are configured."""
    server_socket = socket.create_server((config.host, config.port), reuse_port=True)
    # Periodic accept timeouts let the loop notice shutdown requests.
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    if not config.tls_enabled:
        return server_socket

    tls_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    try:
        tls_context.load_cert_chain(config.cert, config.key)
    except (ssl.SSLError, OSError) as error:
        SOCKET_LOGGER.critical(
            "Failed to load TLS certificates",
            extra={"event": "tls_load_failed", "error_type": type(error).__name__},
        )
        server_socket.close()
        sys.exit(1)
    return tls_context.wrap_socket(server_socket, server_side=True)
