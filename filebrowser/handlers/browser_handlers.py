"""File browser handlers: listing, download, archive, move and delete."""

import logging
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

from filebrowser.domain.archive import stream_directory_zip
from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.errors import ErrorKind, OperationError
from filebrowser.domain.file_ops import FileOperations
from filebrowser.domain.http_types import HttpRequest, HttpResponse
from filebrowser.domain.response_builders import (
    STATUS_FOR_KIND,
    bad_request_response,
    json_response,
    ok_response,
    operation_error_response,
    streaming_response,
)
from filebrowser.pipeline.validation import parse_json_object, require_string_fields

BROWSER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.handlers.browser"), {}
)

ZIP_CONTENT_TYPE = "application/zip"


def open_for_download(filepath: Path) -> BinaryIO:
    """Open a file before any status line is committed to the client."""
    try:
        return open(filepath, "rb")
    except FileNotFoundError as exc:
        raise OperationError(ErrorKind.NOT_FOUND, "Not found") from exc
    except OSError as exc:
        raise OperationError(ErrorKind.INTERNAL, "Cannot read file") from exc


def stream_file(
    file_handle: BinaryIO, size: int, chunk_size: int = 65536
) -> Iterator[bytes]:
    """Yield exactly ``size`` bytes from an open file, closing it afterwards.

    A file that shrinks mid-download raises, since the declared length can no
    longer be honored.
    """
    with file_handle:
        if BROWSER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            BROWSER_LOGGER.debug(
                "File streaming started",
                extra={"event": "file_streaming_started", "bytes_out": size},
            )
        remaining = size
        while remaining > 0:
            chunk = file_handle.read(min(chunk_size, remaining))
            if not chunk:
                raise EOFError(f"file ended {remaining} bytes early")
            remaining -= len(chunk)
            yield chunk


def _guarded(
    action: Callable[[], HttpResponse],
    request: HttpRequest,
    security_headers: dict[str, str],
) -> HttpResponse:
    """Run a handler body, rendering classified failures as JSON errors."""
    try:
        return action()
    except OperationError as error:
        status = STATUS_FOR_KIND[error.kind]
        log = BROWSER_LOGGER.warning if status != 404 else BROWSER_LOGGER.info
        log(
            f"{request.method} {request.path} failed",
            extra={
                "event": (
                    "forbidden_path"
                    if error.kind is ErrorKind.FORBIDDEN
                    else "request_rejected"
                ),
                "reason": error.kind.value,
                "route": request.path,
                "method": request.method,
                "status_code": status,
            },
        )
        return operation_error_response(error, request, security_headers)


def handle_tree(
    request: HttpRequest,
    file_operations: FileOperations,
    security_headers: dict[str, str],
) -> HttpResponse:
    """GET /api/tree: list a directory (the root when no path is given)."""

    def action() -> HttpResponse:
        listing = file_operations.list_directory(request.query.get("path", "."))
        payload = {
            "cwd": listing.cwd,
            "parent": listing.parent,
            "items": [entry.to_dict() for entry in listing.entries],
            "user": request.identity.to_dict() if request.identity else None,
        }
        return json_response(200, payload, request, security_headers)

    return _guarded(action, request, security_headers)


def handle_download(
    request: HttpRequest,
    file_operations: FileOperations,
    security_headers: dict[str, str],
) -> HttpResponse:
    """GET /api/file: stream a regular file as an attachment."""

    def action() -> HttpResponse:
        meta = file_operations.file_meta(request.query.get("path", ""))
        file_handle = open_for_download(meta.path)
        BROWSER_LOGGER.info(
            "File download started",
            extra={
                "event": "file_download",
                "path": file_operations.sandbox.to_relative(meta.path),
            },
        )
        return streaming_response(
            request,
            stream_file(file_handle, meta.size),
            meta.mime_type,
            meta.filename,
            security_headers,
            content_length=meta.size,
        )

    return _guarded(action, request, security_headers)


def handle_zip(
    request: HttpRequest,
    file_operations: FileOperations,
    security_headers: dict[str, str],
) -> HttpResponse:
    """GET /api/zip: stream a zip archive of a directory."""

    def action() -> HttpResponse:
        sandbox = file_operations.sandbox
        directory = sandbox.resolve(request.query.get("path", ""), must_exist=True)
        if not directory.is_dir():
            raise OperationError(ErrorKind.BAD_REQUEST, "Not a directory")
        name = "root" if directory == sandbox.root else directory.name
        return streaming_response(
            request,
            stream_directory_zip(sandbox, directory),
            ZIP_CONTENT_TYPE,
            f"{name}.zip",
            security_headers,
        )

    return _guarded(action, request, security_headers)


def handle_move(
    request: HttpRequest,
    file_operations: FileOperations,
    security_headers: dict[str, str],
) -> HttpResponse:
    """POST /api/move with a JSON body of ``from`` and ``to`` paths."""
    fields = require_string_fields(parse_json_object(request.body), "from", "to")
    if fields is None:
        return bad_request_response(request, security_headers, "Missing fields")
    source, destination = fields

    def action() -> HttpResponse:
        file_operations.move(source, destination)
        return ok_response(request, security_headers)

    return _guarded(action, request, security_headers)


def handle_delete(
    request: HttpRequest,
    file_operations: FileOperations,
    security_headers: dict[str, str],
) -> HttpResponse:
    """DELETE /api/file: remove a file or directory tree."""
    target = request.query.get("path", "")
    if not target:
        return bad_request_response(request, security_headers, "Missing path")

    def action() -> HttpResponse:
        file_operations.remove(target)
        return ok_response(request, security_headers)

    return _guarded(action, request, security_headers)
