"""Sandboxed file browser server entrypoint."""

import logging
import signal
import sys
from typing import Optional

from filebrowser.bootstrap.config import (
    AppConfig,
    ConfigurationError,
    build_app_config,
    parse_cli_args,
)
from filebrowser.bootstrap.logging_setup import configure_logging
from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.tokens import Identity, Role, TokenAuthority
from filebrowser.lifecycle.state import ServerLifecycle
from filebrowser.transport.accept_loop import run_server

SERVER_LOGGER = CorrelationLoggerAdapter(logging.getLogger("filebrowser.server"), {})


def issue_token(config: AppConfig, user_role: str) -> str:
    """Sign a token for ``USERNAME:ROLE`` with the configured secret and TTL."""
    username, _, role_name = user_role.partition(":")
    if not username:
        raise ConfigurationError("--issue-token expects USERNAME:ROLE")
    try:
        role = Role(role_name or Role.USER.value)
    except ValueError as exc:
        raise ConfigurationError(f"unknown role: {role_name}") from exc
    authority = TokenAuthority(config.auth.jwt_secret, config.auth.token_ttl_seconds)
    return authority.issue(Identity(username, role))


def main(argv: Optional[list[str]] = None) -> int:
    """Start the server, or print a token when --issue-token is given."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination)

    try:
        config = build_app_config(args)
        if args.issue_token:
            print(issue_token(config, args.issue_token))
            return 0
    except ConfigurationError as error:
        SERVER_LOGGER.critical(
            "Invalid configuration: %s",
            error,
            extra={"event": "config_invalid"},
        )
        return 2

    lifecycle = ServerLifecycle()

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal", extra={"event": "signal", "signal": signum}
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting file browser server",
        extra={
            "event": "server_starting",
            "host": config.server.host,
            "port": config.server.port,
            "directory": str(config.root),
            "log_destination": args.log_destination,
            "log_level": args.log_level,
            "tls": config.server.tls_enabled,
            "socket_timeout": config.server.socket_timeout,
            "shutdown_grace_seconds": config.server.shutdown_grace_seconds,
        },
    )
    run_server(config, lifecycle)
    return 0


if __name__ == "__main__":
    sys.exit(main())
