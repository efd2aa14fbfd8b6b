"""Authentication and role gates applied before browser handlers run."""

import logging
from typing import Optional

from filebrowser.domain.correlation_id import CorrelationLoggerAdapter, bind_username
from filebrowser.domain.errors import ErrorKind
from filebrowser.domain.http_types import HttpRequest, HttpResponse
from filebrowser.domain.response_builders import error_response
from filebrowser.security.authorizer import RequestAuthorizer

GATE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.pipeline.authorization"), {}
)


def require_authenticated(
    request: HttpRequest,
    authorizer: RequestAuthorizer,
    security_headers: dict[str, str],
) -> Optional[HttpResponse]:
    """Attach the caller's identity to the request or answer 401."""
    identity = authorizer.extract_identity(request)
    if identity is None:
        return error_response(ErrorKind.UNAUTHORIZED, request, security_headers)
    request.identity = identity
    bind_username(identity.username)
    return None


def require_admin(
    request: HttpRequest, security_headers: dict[str, str]
) -> Optional[HttpResponse]:
    """Allow only admin identities; expects require_authenticated to have run."""
    if request.identity is None:
        return error_response(ErrorKind.UNAUTHORIZED, request, security_headers)
    if not request.identity.is_admin:
        GATE_LOGGER.warning(
            "Admin role required",
            extra={
                "event": "admin_required",
                "route": request.path,
                "method": request.method,
            },
        )
        return error_response(ErrorKind.PERMISSION_DENIED, request, security_headers)
    return None
