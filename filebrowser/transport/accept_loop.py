"""Main connection acceptance loop."""

import logging
import socket
import threading
import time
from typing import Optional

from filebrowser.bootstrap.config import SECURITY_HEADERS, AppConfig
from filebrowser.bootstrap.socket_factory import create_server_socket
from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.response_builders import draining_response
from filebrowser.lifecycle.state import ServerLifecycle
from filebrowser.pipeline.io import send_response
from filebrowser.transport.context import WorkerContext, build_worker_context
from filebrowser.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.transport.accept"), {}
)


def _spawn_worker(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: WorkerContext,
) -> None:
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, context),
        daemon=True,
    )
    if context.lifecycle is not None:
        # Counted before start so draining never sees a half-spawned worker.
        context.lifecycle.register_worker(thread)
    thread.start()


class _DrainClock:
    """Tracks the grace deadline once shutdown has been requested."""

    def __init__(self, lifecycle: ServerLifecycle, grace_seconds: float) -> None:
        self._lifecycle = lifecycle
        self._grace_seconds = grace_seconds
        self._deadline: Optional[float] = None

    def finished(self) -> bool:
        """True once stopping and no workers remain or the grace period is spent."""
        if not self._lifecycle.should_stop():
            return False
        if self._deadline is None:
            self._deadline = time.monotonic() + self._grace_seconds
        return (
            self._lifecycle.active_worker_count() == 0
            or time.monotonic() >= self._deadline
        )

    def remaining(self) -> float:
        if self._deadline is None:
            return self._grace_seconds
        return max(0.0, self._deadline - time.monotonic())


def run_server(config: AppConfig, lifecycle: ServerLifecycle) -> None:
    """Accept connections until draining completes, then wait for workers.

    While draining, the listener stays open and answers 503 so health checks
    can observe the state, until in-flight workers finish or the grace period
    runs out.
    """
    server_config = config.server
    server_socket = create_server_socket(server_config)
    context = build_worker_context(config, lifecycle)
    drain_clock = _DrainClock(lifecycle, server_config.shutdown_grace_seconds)

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "host": server_config.host,
            "port": server_config.port,
            "tls": server_config.tls_enabled,
        },
    )

    try:
        while True:
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                if drain_clock.finished():
                    break
                continue
            except OSError as error:
                if lifecycle.should_stop():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            if lifecycle.is_draining():
                send_response(client_socket, draining_response(SECURITY_HEADERS))
                client_socket.close()
                if drain_clock.finished():
                    break
                continue

            _spawn_worker(client_socket, client_address, context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "grace_seconds": server_config.shutdown_grace_seconds,
                "remaining_workers": lifecycle.active_worker_count(),
            },
        )
        lifecycle.wait_for_workers(drain_clock.remaining())
        ACCEPT_LOGGER.info("Server shutdown complete", extra={"event": "server_stopped"})
