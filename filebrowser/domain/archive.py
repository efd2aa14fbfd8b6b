"""Streaming zip archives of sandboxed directories."""

import logging
import os
import zipfile
from pathlib import Path
from typing import Iterator, Optional

from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.sandbox import PathSandbox

ARCHIVE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.domain.archive"), {}
)

ARCHIVE_CHUNK_SIZE = 65536


class _ZipSink:
    """Unseekable write target whose buffered bytes are drained by the caller.

    Lacking ``tell``/``seek`` makes ``zipfile`` emit data descriptors instead
    of rewriting local headers, which is what allows streaming.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data: bytes) -> int:
        self._buffer += data
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


def _archive_name(directory: str, path: str) -> str:
    return os.path.relpath(path, directory).replace(os.sep, "/")


def _file_source(sandbox: PathSandbox, path: str) -> Optional[str]:
    """Return the readable file behind ``path``, or None to skip it."""
    if not os.path.islink(path):
        return path if os.path.isfile(path) else None
    target = os.path.realpath(path)
    if not sandbox.contains(target) or not os.path.isfile(target):
        return None
    return target


def _skip(path: str, reason: str) -> None:
    ARCHIVE_LOGGER.info(
        "Archive entry skipped",
        extra={"event": "archive_entry_skipped", "path": path, "reason": reason},
    )


def stream_directory_zip(
    sandbox: PathSandbox, directory: Path, chunk_size: int = ARCHIVE_CHUNK_SIZE
) -> Iterator[bytes]:
    """Yield a zip archive of ``directory`` in pieces as it is produced.

    Hidden entries are left out, directory links are never descended and
    file links are only followed while their target stays inside the
    sandbox. Read errors propagate and end the stream. Closing the generator
    early closes the open source file and the archive.
    """
    base = os.fspath(directory)
    sink = _ZipSink()
    ARCHIVE_LOGGER.info(
        "Archive streaming started",
        extra={"event": "archive_started", "path": sandbox.to_relative(base)},
    )
    with zipfile.ZipFile(
        sink, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
    ) as archive:
        for dirpath, dirnames, filenames in os.walk(base):
            visible_dirs = []
            for name in sorted(dirnames):
                if name.startswith("."):
                    continue
                if os.path.islink(os.path.join(dirpath, name)):
                    _skip(os.path.join(dirpath, name), "directory_link")
                    continue
                visible_dirs.append(name)
            dirnames[:] = visible_dirs

            if dirpath != base:
                info = zipfile.ZipInfo.from_file(
                    dirpath, _archive_name(base, dirpath), strict_timestamps=False
                )
                archive.writestr(info, b"")

            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                path = os.path.join(dirpath, name)
                source = _file_source(sandbox, path)
                if source is None:
                    _skip(path, "unsafe_or_special")
                    continue
                info = zipfile.ZipInfo.from_file(
                    source, _archive_name(base, path), strict_timestamps=False
                )
                info.compress_type = zipfile.ZIP_DEFLATED
                with open(source, "rb") as src, archive.open(info, "w") as dest:
                    while True:
                        chunk = src.read(chunk_size)
                        if not chunk:
                            break
                        dest.write(chunk)
                        data = sink.drain()
                        if data:
                            yield data
                data = sink.drain()
                if data:
                    yield data
    tail = sink.drain()
    if tail:
        yield tail
