"""Shared fixtures for unit tests."""

import logging
from pathlib import Path

import pytest

from filebrowser.domain.correlation_id import clear_correlation_id
from filebrowser.domain.file_ops import FileOperations
from filebrowser.domain.sandbox import PathSandbox
from filebrowser.domain.tokens import TokenAuthority

UNIT_SECRET = "unit-test-secret-that-is-long-enough-for-hs256"


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("filebrowser")
    old_propagate = logger.propagate
    old_level = logger.level
    old_handlers = list(logger.handlers)
    logger.propagate = True
    yield
    for handler in logger.handlers:
        if handler not in old_handlers:
            handler.close()
    logger.handlers[:] = old_handlers
    logger.setLevel(old_level)
    logger.propagate = old_propagate
    clear_correlation_id()


@pytest.fixture(name="root_dir")
def root_dir_fixture(tmp_path: Path) -> Path:
    """A sandbox root nested inside tmp_path so siblings can act as 'outside'."""
    root = tmp_path / "root"
    root.mkdir()
    return root.resolve()


@pytest.fixture(name="outside_dir")
def outside_dir_fixture(tmp_path: Path) -> Path:
    """A directory next to the sandbox root holding a secret file."""
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("top secret")
    return outside.resolve()


@pytest.fixture(name="sandbox")
def sandbox_fixture(root_dir: Path) -> PathSandbox:
    return PathSandbox(root_dir)


@pytest.fixture(name="file_ops")
def file_ops_fixture(sandbox: PathSandbox) -> FileOperations:
    return FileOperations(sandbox)


@pytest.fixture(name="authority")
def authority_fixture() -> TokenAuthority:
    return TokenAuthority(UNIT_SECRET, 600)
