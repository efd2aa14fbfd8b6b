"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from filebrowser.domain.tokens import Identity, Role, TokenAuthority
from tests.utils.http import reserve_port, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"
TEST_SECRET = "integration-test-secret-with-enough-entropy"


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    directory: Path
    process: subprocess.Popen[str]
    log_file: Path
    admin_token: str
    user_token: str


def _launch_server(
    host: str,
    port: int,
    directory: Path,
    log_file: Path,
    extra_args: list[str] | None = None,
) -> Generator[ServerProcessInfo, None, None]:
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "--directory",
        str(directory),
        "--host",
        host,
        "--port",
        str(port),
        "--log-destination",
        str(log_file),
    ]
    if extra_args:
        args.extend(extra_args)
    env = {**os.environ, "FILEBROWSER_JWT_SECRET": TEST_SECRET}

    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            stdout, stderr = process.communicate(timeout=1)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            process.terminate()
            process.wait(timeout=5)
            raise

        authority = TokenAuthority(TEST_SECRET, 600)
        yield {
            "base_url": f"http://{host}:{port}",
            "host": host,
            "port": port,
            "directory": directory,
            "process": process,
            "log_file": log_file,
            "admin_token": authority.issue(Identity("admin", Role.ADMIN)),
            "user_token": authority.issue(Identity("alice", Role.USER)),
        }

        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                process.kill()


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(scope="session")
def jwt_secret() -> str:
    """Secret shared by the launched server and locally minted tokens."""

    return TEST_SECRET


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server over a fresh root directory for integration tests."""

    host = "127.0.0.1"
    port = reserve_port(host)
    directory = tmp_path_factory.mktemp("browser-root")
    log_dir = tmp_path_factory.mktemp("browser-logs")
    yield from _launch_server(
        host,
        port,
        directory,
        log_dir / "server.log",
        ["--shutdown-grace-seconds", "3"],
    )


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]


@pytest.fixture()
def admin_headers(server_process: ServerProcessInfo) -> dict[str, str]:
    """Authorization header carrying an admin token."""

    return {"Authorization": f"Bearer {server_process['admin_token']}"}


@pytest.fixture()
def user_headers(server_process: ServerProcessInfo) -> dict[str, str]:
    """Authorization header carrying a regular user token."""

    return {"Authorization": f"Bearer {server_process['user_token']}"}
