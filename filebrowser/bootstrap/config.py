"""Server configuration and CLI argument parsing."""

import argparse
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value is not None else default


MAX_BODY_BYTES = _env_int("FILEBROWSER_MAX_BODY_BYTES", 1024 * 1024)
DEFAULT_SOCKET_TIMEOUT = _env_int("FILEBROWSER_SOCKET_TIMEOUT", 60)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("FILEBROWSER_SHUTDOWN_GRACE_SECONDS", 30)
DEFAULT_TOKEN_TTL_MINUTES = _env_float("FILEBROWSER_TOKEN_TTL_MINUTES", 60.0)

HEADER_DELIMITER = b"\r\n\r\n"
ALLOWED_METHODS = {"GET", "POST", "DELETE"}

SECURITY_HEADERS = {
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'",
    "X-Content-Type-Options": "nosniff",
}


class ConfigurationError(ValueError):
    """Raised when startup configuration is missing or invalid."""


@dataclass(frozen=True)
class ServerConfig:
    """Listener, timeout and shutdown settings."""

    socket_timeout: int
    shutdown_grace_seconds: int
    host: str = "localhost"
    port: int = 4221
    cert: Optional[str] = None
    key: Optional[str] = None

    @property
    def tls_enabled(self) -> bool:
        return bool(self.cert and self.key)


@dataclass(frozen=True)
class AuthConfig:
    """Token signing parameters."""

    jwt_secret: str
    token_ttl_minutes: float

    @property
    def token_ttl_seconds(self) -> int:
        return int(self.token_ttl_minutes * 60)


@dataclass(frozen=True)
class AppConfig:
    """Immutable process configuration, built once at startup."""

    root: Path
    auth: AuthConfig
    server: ServerConfig


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(description="Sandboxed file browser server")
    parser.add_argument(
        "--directory",
        default=os.getenv("FILEBROWSER_ROOT", "."),
        help="Root directory exposed to clients",
    )
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=4221)
    parser.add_argument("--cert", help="Path to TLS certificate file")
    parser.add_argument("--key", help="Path to TLS private key file")
    parser.add_argument(
        "--jwt-secret",
        default=os.getenv("FILEBROWSER_JWT_SECRET"),
        help="Secret used to sign and verify bearer tokens",
    )
    parser.add_argument(
        "--token-ttl-minutes",
        type=float,
        default=DEFAULT_TOKEN_TTL_MINUTES,
        help="Lifetime of issued tokens in minutes",
    )
    parser.add_argument(
        "--issue-token",
        metavar="USERNAME:ROLE",
        help="Print a signed token for the given identity and exit",
    )
    default_log_level = os.getenv("FILEBROWSER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("FILEBROWSER_LOG_DESTINATION", "stdout")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for request processing",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    return parser.parse_args(argv)


def build_app_config(args: argparse.Namespace) -> AppConfig:
    """Validate parsed arguments and freeze them into an AppConfig."""
    if not args.directory:
        raise ConfigurationError("root directory is required")
    root = Path(os.path.realpath(args.directory))
    if not root.is_dir():
        raise ConfigurationError(f"root is not a directory: {args.directory}")

    if not args.jwt_secret:
        raise ConfigurationError(
            "jwt secret is required (--jwt-secret or FILEBROWSER_JWT_SECRET)"
        )
    ttl = args.token_ttl_minutes
    if ttl is None or not math.isfinite(ttl) or ttl <= 0:
        raise ConfigurationError("token ttl must be a positive number of minutes")

    return AppConfig(
        root=root,
        auth=AuthConfig(jwt_secret=args.jwt_secret, token_ttl_minutes=ttl),
        server=ServerConfig(
            socket_timeout=args.socket_timeout,
            shutdown_grace_seconds=args.shutdown_grace_seconds,
            host=args.host,
            port=args.port,
            cert=args.cert,
            key=args.key,
        ),
    )
