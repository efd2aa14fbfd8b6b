"""Filesystem sandbox utilities for safe path resolution."""

import os
import posixpath
from pathlib import Path
from typing import Optional, Union

from filebrowser.domain.errors import ErrorKind, ForbiddenPath, OperationError


def normalize_relative(user_path: Optional[str]) -> str:
    """Lexically normalize client input into a root-relative POSIX path.

    Backslashes are treated as separators and leading separators are dropped,
    so absolute-looking input stays relative to the sandbox root. The empty
    string and ``None`` both mean the root itself and normalize to ``"."``.
    """
    if not user_path:
        return "."
    if "\x00" in user_path:
        raise ForbiddenPath

    unified = user_path.replace("\\", "/")
    relative_part = posixpath.normpath(unified).lstrip("/")
    if not relative_part:
        return "."

    # normpath keeps leading ".." segments, and they are the escape vector.
    if ".." in relative_part.split("/"):
        raise ForbiddenPath
    return relative_part


class PathSandbox:
    """Resolves untrusted relative paths against a fixed, canonical root."""

    def __init__(self, root: Union[str, os.PathLike]) -> None:
        self._root = os.path.realpath(root)
        self._prefix = (
            self._root if self._root.endswith(os.sep) else self._root + os.sep
        )

    @property
    def root(self) -> Path:
        """Return the canonical sandbox root."""
        return Path(self._root)

    def contains(self, absolute_path: Union[str, os.PathLike]) -> bool:
        """Return True when the path is the root or lies beneath it."""
        candidate = os.fspath(absolute_path)
        return candidate == self._root or candidate.startswith(self._prefix)

    def resolve(
        self,
        user_path: Optional[str],
        *,
        must_exist: bool = False,
        follow_final: bool = True,
    ) -> Path:
        """Resolve a client path to a canonical location inside the sandbox.

        Symbolic links are followed before the containment check, so a link
        pointing outside the root is rejected even when its target does not
        exist. With ``follow_final`` disabled only the parent directory is
        canonicalized and the final component is kept as named, which lets
        move and delete act on a link rather than on what it points to.

        Raises ``ForbiddenPath`` for any escape and, when ``must_exist`` is
        set, an ``OperationError`` of kind ``NOT_FOUND`` for missing targets.
        """
        relative_part = normalize_relative(user_path)
        if relative_part == ".":
            return Path(self._root)

        candidate = os.path.join(self._root, *relative_part.split("/"))
        if follow_final:
            canonical = os.path.realpath(candidate)
            exists = os.path.exists(canonical)
        else:
            parent, name = os.path.split(candidate)
            canonical = os.path.join(os.path.realpath(parent), name)
            exists = os.path.lexists(canonical)

        if not self.contains(canonical):
            raise ForbiddenPath
        if must_exist and not exists:
            raise OperationError(ErrorKind.NOT_FOUND, "Not found")
        return Path(canonical)

    def to_relative(self, absolute_path: Union[str, os.PathLike]) -> str:
        """Map a sandboxed absolute path back to its root-relative form."""
        candidate = os.fspath(absolute_path)
        if not self.contains(candidate):
            raise ForbiddenPath
        relative = os.path.relpath(candidate, self._root)
        if relative == ".":
            return "."
        return relative.replace(os.sep, "/")
