"""Pytest configuration and fixtures for GitPanel tests."""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any, Generator, Optional, Sequence

import pytest

from gitpanel.config import Settings, reset_settings
from gitpanel.errors import AuthenticationFailure, BackendUnreachableError, GitCommandError
from gitpanel.git.backend import Credentials
from gitpanel.git.status import FileStatusEntry


class FakeGitBackend:
    """In-memory GitBackend.

    Repositories are registered with ``add_repository``; any directory at or
    below a registered root resolves to it. Calls are recorded in ``calls``
    as ``(operation, args)`` tuples.

    ``remote_results`` scripts push/pull: each item is either a message to
    return or an exception to raise, consumed in order.

    ``gates`` holds events keyed by directory; ``show_top_level`` for that
    directory waits on the event. ``status_gates`` does the same for
    ``status`` keyed by root. Tests use them to reorder responses.
    """

    def __init__(self) -> None:
        self.repositories: dict[Path, dict[str, Any]] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.remote_results: list[Any] = []
        self.gates: dict[Path, asyncio.Event] = {}
        self.status_gates: dict[Path, asyncio.Event] = {}
        self.unreachable = False
        self.failing_operations: set[str] = set()
        self.closed = False

    def add_repository(
        self,
        root: Path | str,
        branch: Optional[str] = "main",
        files: Sequence[FileStatusEntry] = (),
    ) -> Path:
        root = Path(root)
        self.repositories[root] = {"branch": branch, "files": tuple(files)}
        return root

    def set_files(self, root: Path | str, files: Sequence[FileStatusEntry]) -> None:
        self.repositories[Path(root)]["files"] = tuple(files)

    def set_branch(self, root: Path | str, branch: Optional[str]) -> None:
        self.repositories[Path(root)]["branch"] = branch

    def calls_for(self, operation: str) -> list[tuple]:
        return [args for op, args in self.calls if op == operation]

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if self.unreachable:
            raise BackendUnreachableError(operation, "connection refused")
        if operation in self.failing_operations:
            raise GitCommandError(f"git {operation} failed", operation=operation, returncode=1)

    def _repository(self, repo_path: Path | str) -> dict[str, Any]:
        repo = self.repositories.get(Path(repo_path))
        if repo is None:
            raise GitCommandError("not a git repository", operation="status", returncode=128)
        return repo

    async def show_top_level(self, path: Path | str) -> Optional[Path]:
        path = Path(path)
        gate = self.gates.get(path)
        if gate is not None:
            await gate.wait()
        self._record("show_top_level", path)
        for root in self.repositories:
            if path == root or root in path.parents:
                return root
        return None

    async def status(self, repo_path: Path | str) -> tuple[FileStatusEntry, ...]:
        gate = self.status_gates.get(Path(repo_path))
        if gate is not None:
            await gate.wait()
        self._record("status", Path(repo_path))
        return self._repository(repo_path)["files"]

    async def current_branch(self, repo_path: Path | str) -> Optional[str]:
        self._record("current_branch", Path(repo_path))
        return self._repository(repo_path)["branch"]

    async def add(self, repo_path: Path | str, files: Sequence[str]) -> None:
        self._record("add", Path(repo_path), list(files))

    async def reset(self, repo_path: Path | str, files: Sequence[str]) -> None:
        self._record("reset", Path(repo_path), list(files))

    async def checkout(self, repo_path: Path | str, filenames: Sequence[str]) -> None:
        self._record("checkout", Path(repo_path), list(filenames))

    async def _remote(self, operation: str, repo_path: Path | str, credentials: Optional[Credentials]) -> str:
        self._record(operation, Path(repo_path), credentials)
        if not self.remote_results:
            return f"{operation} done"
        result = self.remote_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def push(self, repo_path: Path | str, credentials: Optional[Credentials] = None) -> str:
        return await self._remote("push", repo_path, credentials)

    async def pull(self, repo_path: Path | str, credentials: Optional[Credentials] = None) -> str:
        return await self._remote("pull", repo_path, credentials)

    async def ignore(self, repo_path: Path | str, files: Sequence[str], by_extension: bool) -> None:
        self._record("ignore", Path(repo_path), list(files), by_extension)

    async def init(self, repo_path: Path | str) -> None:
        self._record("init", Path(repo_path))
        self.add_repository(repo_path, branch="master")

    async def clone(
        self, url: str, target_path: Path | str, credentials: Optional[Credentials] = None
    ) -> str:
        self._record("clone", url, Path(target_path))
        return "Cloning into..."

    async def add_remote(self, repo_path: Path | str, url: str, name: Optional[str] = None) -> None:
        self._record("add_remote", Path(repo_path), url, name)

    async def ensure_gitignore(self, repo_path: Path | str) -> Path:
        self._record("ensure_gitignore", Path(repo_path))
        return Path(repo_path) / ".gitignore"

    async def close(self) -> None:
        self.closed = True


def auth_failure(operation: str = "push") -> AuthenticationFailure:
    return AuthenticationFailure(operation, "fatal: Authentication failed", returncode=128)


def entry(path: str, xy: str) -> FileStatusEntry:
    """Build a status entry from a two-character porcelain code."""
    return FileStatusEntry(path=path, x=xy[0], y=xy[1])


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def repo_root() -> Path:
    return Path("/work/project")


@pytest.fixture
def backend(repo_root: Path) -> FakeGitBackend:
    """Fake backend with one repository on branch main."""
    fake = FakeGitBackend()
    fake.add_repository(repo_root, branch="main")
    return fake


@pytest.fixture
def settings() -> Settings:
    """Settings built from defaults only."""
    reset_settings()
    return Settings()


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_path = temp_dir / "config.yaml"
    config_path.write_text(
        """
backend:
  base_url: http://localhost:9999/
  timeout: 5

staging:
  simple_staging: true

diff:
  double_click_diff: true
  supported_extensions:
    - ipynb
    - .PY

remote:
  max_credential_attempts: 3
"""
    )
    return config_path


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Clean environment variables for testing."""
    # Store original values
    original = {}
    env_vars = [
        "GITPANEL_BACKEND__BASE_URL",
        "GITPANEL_BACKEND__TOKEN",
        "GITPANEL_STAGING__SIMPLE_STAGING",
        "GITPANEL_REMOTE__MAX_CREDENTIAL_ATTEMPTS",
        "GITPANEL_TEST_TOKEN",
    ]
    for var in env_vars:
        original[var] = os.environ.pop(var, None)

    reset_settings()

    yield

    # Restore original values
    for var, value in original.items():
        if value is not None:
            os.environ[var] = value
        elif var in os.environ:
            del os.environ[var]

    reset_settings()
