"""Bearer credential extraction for inbound requests."""

import logging
from typing import Optional

from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.http_types import HttpRequest
from filebrowser.domain.tokens import Identity, TokenAuthority

AUTH_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.security.authorizer"), {}
)

BEARER_SCHEME = "bearer"
TOKEN_QUERY_PARAM = "token"


class RequestAuthorizer:
    """Turns the credential carried by a request into an Identity.

    The header channel wins; the ``token`` query parameter exists for
    download links that cannot attach headers.
    """

    def __init__(self, authority: TokenAuthority) -> None:
        self._authority = authority

    @staticmethod
    def extract_token(request: HttpRequest) -> Optional[str]:
        """Return the raw token from the Authorization header or query string."""
        authorization = request.headers.get("authorization", "")
        scheme, _, credential = authorization.strip().partition(" ")
        if scheme.lower() == BEARER_SCHEME and credential.strip():
            return credential.strip()
        query_token = request.query.get(TOKEN_QUERY_PARAM, "").strip()
        return query_token or None

    def extract_identity(self, request: HttpRequest) -> Optional[Identity]:
        """Return the verified identity for the request, or None."""
        token = self.extract_token(request)
        if token is None:
            if AUTH_LOGGER.logger.isEnabledFor(logging.DEBUG):
                AUTH_LOGGER.debug(
                    "No credential presented",
                    extra={"event": "auth_missing", "route": request.path},
                )
            return None
        identity = self._authority.verify(token)
        if identity is None:
            AUTH_LOGGER.info(
                "Credential rejected",
                extra={"event": "auth_rejected", "route": request.path},
            )
        return identity
