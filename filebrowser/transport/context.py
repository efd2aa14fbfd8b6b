"""Context object shared across worker threads."""

from dataclasses import dataclass
from typing import Optional

from filebrowser.bootstrap.config import AppConfig
from filebrowser.domain.file_ops import FileOperations
from filebrowser.domain.sandbox import PathSandbox
from filebrowser.domain.tokens import TokenAuthority
from filebrowser.lifecycle.state import ServerLifecycle
from filebrowser.security.authorizer import RequestAuthorizer


@dataclass(frozen=True)
class WorkerContext:
    """Read-only dependencies shared by every handler thread."""

    file_operations: FileOperations
    authorizer: RequestAuthorizer
    lifecycle: Optional[ServerLifecycle] = None
    socket_timeout: Optional[int] = None


def build_worker_context(
    config: AppConfig, lifecycle: Optional[ServerLifecycle] = None
) -> WorkerContext:
    """Wire the sandbox, file operations and token checks from configuration."""
    authority = TokenAuthority(
        config.auth.jwt_secret, config.auth.token_ttl_seconds
    )
    return WorkerContext(
        file_operations=FileOperations(PathSandbox(config.root)),
        authorizer=RequestAuthorizer(authority),
        lifecycle=lifecycle,
        socket_timeout=config.server.socket_timeout,
    )
