"""Unit tests for listener creation."""

import logging
import ssl
from unittest.mock import MagicMock, patch

from filebrowser.bootstrap.config import ServerConfig
from filebrowser.bootstrap.socket_factory import ACCEPT_POLL_SECONDS, create_server_socket


def test_plain_socket_gets_accept_timeout():
    config = ServerConfig(socket_timeout=5, shutdown_grace_seconds=1, port=0)
    with patch("filebrowser.bootstrap.socket_factory.socket.create_server") as mock_create:
        server_sock = MagicMock()
        mock_create.return_value = server_sock
        assert create_server_socket(config) is server_sock
    server_sock.settimeout.assert_called_once_with(ACCEPT_POLL_SECONDS)


def test_create_server_socket_logs_tls_error(caplog):
    """TLS errors during socket creation are logged as CRITICAL and exit."""
    caplog.set_level(logging.CRITICAL)
    config = ServerConfig(
        socket_timeout=5,
        shutdown_grace_seconds=1,
        port=8443,
        cert="fake_cert.pem",
        key="fake_key.pem",
    )

    with patch(
        "filebrowser.bootstrap.socket_factory.socket.create_server"
    ) as mock_create_server, patch(
        "filebrowser.bootstrap.socket_factory.ssl.SSLContext"
    ) as mock_ssl_context, patch(
        "filebrowser.bootstrap.socket_factory.sys.exit"
    ) as mock_exit:
        mock_server_sock = MagicMock()
        mock_create_server.return_value = mock_server_sock
        context_instance = MagicMock()
        context_instance.load_cert_chain.side_effect = ssl.SSLError("Invalid certificate")
        mock_ssl_context.return_value = context_instance

        create_server_socket(config)

        mock_exit.assert_called_with(1)
        mock_server_sock.close.assert_called_once()

    critical_record = next(
        (r for r in caplog.records if r.levelno == logging.CRITICAL), None
    )
    assert critical_record is not None
    assert "Failed to load TLS certificates" in critical_record.message
    assert critical_record.error_type == "SSLError"
