"""Request routing logic."""

import logging
from typing import Callable, NamedTuple

from filebrowser.bootstrap.config import SECURITY_HEADERS
from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.file_ops import FileOperations
from filebrowser.domain.http_types import HttpRequest, HttpResponse
from filebrowser.domain.response_builders import (
    method_not_allowed_response,
    not_found_response,
)
from filebrowser.handlers.browser_handlers import (
    handle_delete,
    handle_download,
    handle_move,
    handle_tree,
    handle_zip,
)
from filebrowser.handlers.system_handlers import handle_healthz
from filebrowser.pipeline.authorization import require_admin, require_authenticated
from filebrowser.transport.context import WorkerContext

ROUTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.pipeline.router"), {}
)

BrowserHandler = Callable[[HttpRequest, FileOperations, dict[str, str]], HttpResponse]


class Route(NamedTuple):
    handler: BrowserHandler
    admin_only: bool


ROUTES: dict[tuple[str, str], Route] = {
    ("GET", "/api/tree"): Route(handle_tree, False),
    ("GET", "/api/file"): Route(handle_download, False),
    ("GET", "/api/zip"): Route(handle_zip, False),
    ("POST", "/api/move"): Route(handle_move, True),
    ("DELETE", "/api/file"): Route(handle_delete, True),
}


def _methods_for(path: str) -> set[str]:
    return {method for method, route_path in ROUTES if route_path == path}


def route_request(request: HttpRequest, context: WorkerContext) -> HttpResponse:
    """Route the request through its gates to a handler and return a response."""
    if request.path == "/healthz":
        return handle_healthz(request, context.lifecycle)

    route = ROUTES.get((request.method, request.path))
    if route is None:
        allowed = _methods_for(request.path)
        if allowed:
            return method_not_allowed_response(request, SECURITY_HEADERS, allowed)
        ROUTER_LOGGER.info(
            "No matching route found",
            extra={
                "event": "route_not_found",
                "route": request.path,
                "method": request.method,
            },
        )
        return not_found_response(request, SECURITY_HEADERS)

    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Route matched",
            extra={"event": "route_matched", "route": request.path},
        )

    rejection = require_authenticated(request, context.authorizer, SECURITY_HEADERS)
    if rejection is None and route.admin_only:
        rejection = require_admin(request, SECURITY_HEADERS)
    if rejection is not None:
        return rejection

    return route.handler(request, context.file_operations, SECURITY_HEADERS)
