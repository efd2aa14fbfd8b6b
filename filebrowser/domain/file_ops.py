"""Directory listing, metadata, move and delete inside the sandbox."""

import logging
import mimetypes
import os
import shutil
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from filebrowser.domain.correlation_id import CorrelationLoggerAdapter
from filebrowser.domain.errors import ErrorKind, ForbiddenPath, OperationError
from filebrowser.domain.sandbox import PathSandbox

FILE_OPS_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("filebrowser.domain.file_ops"), {}
)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class DirectoryEntry:
    """A single visible child of a listed directory."""

    name: str
    is_dir: bool
    size: Optional[int]
    modified: str

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "isDir": self.is_dir,
            "size": self.size,
            "mtime": self.modified,
        }


@dataclass(frozen=True)
class DirectoryListing:
    """Snapshot of a directory relative to the sandbox root."""

    cwd: str
    parent: Optional[str]
    entries: list[DirectoryEntry]


@dataclass(frozen=True)
class FileMeta:
    """Everything needed to stream a regular file back to a client."""

    path: Path
    size: int
    mime_type: str
    filename: str


def format_mtime(timestamp: float) -> str:
    """Render a POSIX timestamp as ISO-8601 UTC with millisecond precision."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def guess_mime_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or DEFAULT_MIME_TYPE


def _inspect_entry(directory: Path, name: str) -> DirectoryEntry:
    """Describe an entry, following it when it is a symbolic link.

    A link that cannot be followed, such as a dangling or looping one, is
    reported as a file of unknown size. An ``OSError`` from the entry itself
    propagates so the caller can drop it.
    """
    entry_path = directory / name
    link_stat = entry_path.lstat()
    is_dir = stat.S_ISDIR(link_stat.st_mode)
    size: Optional[int] = None if is_dir else link_stat.st_size
    modified = link_stat.st_mtime
    if stat.S_ISLNK(link_stat.st_mode):
        try:
            target_stat = entry_path.stat()
        except OSError:
            is_dir, size = False, None
        else:
            is_dir = stat.S_ISDIR(target_stat.st_mode)
            size = None if is_dir else target_stat.st_size
            modified = target_stat.st_mtime
    return DirectoryEntry(name, is_dir, size, format_mtime(modified))


def _sort_key(entry: DirectoryEntry) -> tuple[bool, str, str]:
    return (not entry.is_dir, entry.name.casefold(), entry.name)


class FileOperations:
    """Filesystem actions that only ever touch sandbox-resolved paths."""

    def __init__(self, sandbox: PathSandbox) -> None:
        self.sandbox = sandbox

    def list_directory(self, rel_dir: Optional[str]) -> DirectoryListing:
        """List the visible children of a directory, directories first."""
        directory = self.sandbox.resolve(rel_dir, must_exist=True)
        if not directory.is_dir():
            FILE_OPS_LOGGER.info(
                "Listing target is not a directory",
                extra={"event": "not_a_directory", "path": rel_dir},
            )
            raise OperationError(ErrorKind.BAD_REQUEST, "Not a directory")

        try:
            names = os.listdir(directory)
        except FileNotFoundError as exc:
            raise OperationError(ErrorKind.NOT_FOUND, "Not found") from exc
        except OSError as exc:
            raise OperationError(ErrorKind.INTERNAL, "Cannot read directory") from exc

        entries = []
        for name in names:
            if name.startswith("."):
                continue
            try:
                entries.append(_inspect_entry(directory, name))
            except OSError:
                # Vanished or unreadable since listdir.
                FILE_OPS_LOGGER.debug(
                    "Directory entry skipped",
                    extra={"event": "entry_skipped", "entry": name},
                )
        entries.sort(key=_sort_key)

        cwd = self.sandbox.to_relative(directory)
        parent = None if cwd == "." else (os.path.dirname(cwd) or ".")
        FILE_OPS_LOGGER.info(
            "Directory listed",
            extra={"event": "directory_listed", "path": cwd, "entries": len(entries)},
        )
        return DirectoryListing(cwd, parent, entries)

    def file_meta(self, rel_file: Optional[str]) -> FileMeta:
        """Return size and content type for a regular file."""
        target = self.sandbox.resolve(rel_file, must_exist=True)
        try:
            target_stat = target.stat()
        except FileNotFoundError as exc:
            raise OperationError(ErrorKind.NOT_FOUND, "Not found") from exc
        except OSError as exc:
            raise OperationError(ErrorKind.INTERNAL, "Cannot read file") from exc
        if stat.S_ISDIR(target_stat.st_mode):
            FILE_OPS_LOGGER.info(
                "Metadata target is a directory",
                extra={"event": "is_a_directory", "path": rel_file},
            )
            raise OperationError(ErrorKind.BAD_REQUEST, "Is a directory")
        return FileMeta(
            path=target,
            size=target_stat.st_size,
            mime_type=guess_mime_type(target.name),
            filename=target.name,
        )

    def move(self, from_rel: str, to_rel: str) -> None:
        """Rename an entry, creating missing destination directories."""
        source = self.sandbox.resolve(from_rel, follow_final=False)
        destination = self.sandbox.resolve(to_rel, follow_final=False)
        if source == self.sandbox.root or destination == self.sandbox.root:
            raise ForbiddenPath("Cannot move the root directory")

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.rename(source, destination)
        except OSError as exc:
            FILE_OPS_LOGGER.warning(
                "Move failed",
                extra={"event": "move_failed", "error_type": type(exc).__name__},
            )
            raise OperationError(ErrorKind.INTERNAL, "Move failed") from exc
        FILE_OPS_LOGGER.info(
            "Entry moved",
            extra={
                "event": "entry_moved",
                "path": self.sandbox.to_relative(source),
                "destination": self.sandbox.to_relative(destination),
            },
        )

    def remove(self, rel_path: str) -> None:
        """Delete a file, link or directory tree; missing targets are fine."""
        target = self.sandbox.resolve(rel_path, follow_final=False)
        if target == self.sandbox.root:
            raise ForbiddenPath("Cannot remove the root directory")

        try:
            if target.is_symlink() or not target.is_dir():
                target.unlink()
            else:
                shutil.rmtree(target)
        except FileNotFoundError:
            FILE_OPS_LOGGER.debug(
                "Remove target already absent",
                extra={"event": "entry_absent", "path": rel_path},
            )
            return
        except OSError as exc:
            FILE_OPS_LOGGER.warning(
                "Remove failed",
                extra={"event": "remove_failed", "error_type": type(exc).__name__},
            )
            raise OperationError(ErrorKind.INTERNAL, "Delete failed") from exc
        FILE_OPS_LOGGER.info(
            "Entry removed",
            extra={"event": "entry_removed", "path": self.sandbox.to_relative(target)},
        )
