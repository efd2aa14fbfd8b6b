"""Pure HTTP response builders."""

import json
from typing import Any, Iterable, Optional

from filebrowser.domain.errors import DEFAULT_MESSAGES, ErrorKind, OperationError
from filebrowser.domain.http_types import HttpRequest, HttpResponse, should_close

STATUS_LINES = {
    200: "HTTP/1.1 200 OK",
    400: "HTTP/1.1 400 Bad Request",
    401: "HTTP/1.1 401 Unauthorized",
    403: "HTTP/1.1 403 Forbidden",
    404: "HTTP/1.1 404 Not Found",
    405: "HTTP/1.1 405 Method Not Allowed",
    413: "HTTP/1.1 413 Payload Too Large",
    500: "HTTP/1.1 500 Internal Server Error",
    503: "HTTP/1.1 503 Service Unavailable",
}

STATUS_FOR_KIND = {
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


def _close_for(request: Optional[HttpRequest]) -> bool:
    return should_close(request.headers) if request is not None else True


def json_response(
    status: int,
    payload: Any,
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
) -> HttpResponse:
    """Serialize ``payload`` as a JSON response with the given status."""
    body = json.dumps(payload).encode()
    headers = {"Content-Type": JSON_CONTENT_TYPE, **security_headers}
    return HttpResponse(STATUS_LINES[status], headers, body, _close_for(request))


def error_response(
    kind: ErrorKind,
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
    message: Optional[str] = None,
) -> HttpResponse:
    """Map an error classification to its status and a short JSON message."""
    return json_response(
        STATUS_FOR_KIND[kind],
        {"error": message or DEFAULT_MESSAGES[kind]},
        request,
        security_headers,
    )


def operation_error_response(
    error: OperationError,
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
) -> HttpResponse:
    """Render a classified domain failure."""
    return error_response(error.kind, request, security_headers, error.message)


def ok_response(
    request: HttpRequest, security_headers: dict[str, str]
) -> HttpResponse:
    """Return the success signal used by mutating endpoints."""
    return json_response(200, {"ok": True}, request, security_headers)


def streaming_response(
    request: HttpRequest,
    body_iter: Iterable[bytes],
    content_type: str,
    download_name: str,
    security_headers: dict[str, str],
    content_length: Optional[int] = None,
) -> HttpResponse:
    """Return an attachment response fed by ``body_iter``.

    With a known ``content_length`` the body is sent with a fixed length,
    otherwise it is chunked.
    """
    safe_name = download_name.replace('"', "").replace("\r", "").replace("\n", "")
    headers = {
        "Content-Type": content_type,
        "Content-Disposition": f'attachment; filename="{safe_name}"',
        **security_headers,
    }
    if content_length is not None:
        headers["Content-Length"] = str(content_length)
    return HttpResponse(
        STATUS_LINES[200],
        headers,
        b"",
        should_close(request.headers),
        body_iter=body_iter,
        use_chunked=content_length is None,
    )


def not_found_response(
    request: HttpRequest, security_headers: dict[str, str]
) -> HttpResponse:
    """Return a 404 response reusing the connection preference."""
    return error_response(ErrorKind.NOT_FOUND, request, security_headers)


def bad_request_response(
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
    message: Optional[str] = None,
) -> HttpResponse:
    """Produce a 400 response honoring the caller's connection preference."""
    return error_response(ErrorKind.BAD_REQUEST, request, security_headers, message)


def forbidden_response(
    request: Optional[HttpRequest], security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 403 response for sandbox escapes."""
    return error_response(ErrorKind.FORBIDDEN, request, security_headers)


def entity_too_large_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    body = json.dumps({"error": "Payload too large"}).encode()
    headers = {"Content-Type": JSON_CONTENT_TYPE, **security_headers}
    return HttpResponse(STATUS_LINES[413], headers, body, True)


def method_not_allowed_response(
    request: HttpRequest, security_headers: dict[str, str], allowed_methods
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    response = json_response(
        405, {"error": "Method not allowed"}, request, security_headers
    )
    response.headers["Allow"] = ", ".join(sorted(allowed_methods))
    return response


def draining_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 503 response indicating the server is draining."""
    headers = {
        "Connection": "close",
        "Content-Type": JSON_CONTENT_TYPE,
        **security_headers,
    }
    body = json.dumps({"error": "Server is shutting down"}).encode()
    return HttpResponse(STATUS_LINES[503], headers, body, True)


def healthz_response(
    is_draining: bool,
    request: Optional[HttpRequest],
    security_headers: dict[str, str],
) -> HttpResponse:
    """Produce a health check response based on server state."""
    if is_draining:
        return draining_response(security_headers)
    return json_response(200, {"status": "ok"}, request, security_headers)
