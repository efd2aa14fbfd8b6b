"""Classified failures raised by the sandbox and file operations."""

from enum import Enum


class ErrorKind(Enum):
    """Closed set of failure classifications understood by the response layer."""

    FORBIDDEN = "forbidden"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


DEFAULT_MESSAGES = {
    ErrorKind.FORBIDDEN: "Forbidden path",
    ErrorKind.BAD_REQUEST: "Bad request",
    ErrorKind.UNAUTHORIZED: "Unauthorized",
    ErrorKind.PERMISSION_DENIED: "Forbidden",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.INTERNAL: "Internal error",
}


class OperationError(Exception):
    """Raised by domain code with an explicit classification attached."""

    def __init__(self, kind: ErrorKind, message: str | None = None) -> None:
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)


class ForbiddenPath(OperationError):
    """Raised when a requested path escapes the configured sandbox."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(ErrorKind.FORBIDDEN, message)


class StreamFailure(Exception):
    """Raised when a response body fails after its headers were sent."""
