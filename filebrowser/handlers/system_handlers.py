"""System handlers: health checks."""

import logging
from typing import Optional

from filebrowser.bootstrap.config import SECURITY_HEADERS
from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.http_types import HttpRequest, HttpResponse
from filebrowser.domain.response_builders import healthz_response
from filebrowser.lifecycle.state import ServerLifecycle

SYSTEM_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.handlers.system"), {}
)


def handle_healthz(
    request: HttpRequest, lifecycle: Optional[ServerLifecycle]
) -> HttpResponse:
    """Handle /healthz requests with current server state."""
    is_draining = lifecycle.is_draining() if lifecycle is not None else False
    if SYSTEM_LOGGER.logger.isEnabledFor(logging.DEBUG):
        SYSTEM_LOGGER.debug(
            "Health check performed",
            extra={"event": "healthz_check", "reason": "draining" if is_draining else "ok"},
        )
    return healthz_response(is_draining, request, SECURITY_HEADERS)
