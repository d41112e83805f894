"""Client for the local Git backend service.

The backend wraps the git command-line tool behind a small JSON-over-HTTP
API. Every operation is a POST to ``/git/<operation>`` returning
``{"code": int, "message": str, ...}`` where a non-zero code means the
git command failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import httpx

from gitpanel.errors import (
    AuthenticationFailure,
    BackendError,
    BackendUnreachableError,
    GitCommandError,
    NotARepositoryError,
    RemoteOperationError,
)
from gitpanel.git.status import FileStatusEntry, parse_status_files

logger = logging.getLogger(__name__)

# Substrings git prints when a remote refuses or cannot ask for credentials
AUTH_FAILURE_MARKERS = (
    "authentication failed",
    "could not read username",
    "could not read password",
    "invalid username or password",
    "terminal prompts disabled",
    "permission denied (publickey)",
)

REMOTE_OPERATIONS = frozenset({"push", "pull", "clone"})


@dataclass(frozen=True)
class Credentials:
    """Username/password pair forwarded to a remote operation."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"

    def to_payload(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}


def is_authentication_failure(message: str) -> bool:
    """Check whether a git error message reports rejected credentials."""
    lowered = message.lower()
    return any(marker in lowered for marker in AUTH_FAILURE_MARKERS)


@runtime_checkable
class GitBackend(Protocol):
    """Operations the core needs from the Git backend service."""

    async def show_top_level(self, path: Path | str) -> Optional[Path]: ...

    async def status(self, repo_path: Path | str) -> tuple[FileStatusEntry, ...]: ...

    async def current_branch(self, repo_path: Path | str) -> Optional[str]: ...

    async def add(self, repo_path: Path | str, files: Sequence[str]) -> None: ...

    async def reset(self, repo_path: Path | str, files: Sequence[str]) -> None: ...

    async def checkout(self, repo_path: Path | str, filenames: Sequence[str]) -> None: ...

    async def push(self, repo_path: Path | str, credentials: Optional[Credentials] = None) -> str: ...

    async def pull(self, repo_path: Path | str, credentials: Optional[Credentials] = None) -> str: ...

    async def ignore(self, repo_path: Path | str, files: Sequence[str], by_extension: bool) -> None: ...

    async def init(self, repo_path: Path | str) -> None: ...

    async def clone(
        self, url: str, target_path: Path | str, credentials: Optional[Credentials] = None
    ) -> str: ...

    async def add_remote(self, repo_path: Path | str, url: str, name: Optional[str] = None) -> None: ...

    async def ensure_gitignore(self, repo_path: Path | str) -> Path: ...


class HttpGitBackend:
    """GitBackend implementation over httpx.

    Example:
        >>> async with HttpGitBackend("http://127.0.0.1:8888") as backend:
        ...     root = await backend.show_top_level("/home/me/project/src")
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the service.
            token: Optional API token sent as ``Authorization: token ...``.
            timeout: Request timeout in seconds.
            transport: Custom httpx transport (used by tests).
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"token {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpGitBackend":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _post(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a request and return the decoded body of a successful call.

        Raises:
            BackendUnreachableError: On transport failure or timeout.
            BackendError: On a non-JSON error response.
            AuthenticationFailure: Remote operation refused credentials.
            RemoteOperationError: Remote operation failed for another reason.
            GitCommandError: Any other failing git command.
        """
        logger.debug(f"Backend request: {operation}")

        try:
            response = await self._client.post(f"/git/{operation}", json=payload)
        except httpx.TimeoutException as e:
            raise BackendUnreachableError(operation, f"timed out ({e})") from e
        except httpx.RequestError as e:
            raise BackendUnreachableError(operation, str(e) or type(e).__name__) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            if response.is_success:
                return {}
            raise BackendError(
                f"Backend returned HTTP {response.status_code} for '{operation}'",
                operation=operation,
                status_code=response.status_code,
            )

        code = data.get("code", 0 if response.is_success else response.status_code)
        if code == 0 and response.is_success:
            return data

        message = str(data.get("message") or data.get("command") or f"git {operation} failed")

        if operation in REMOTE_OPERATIONS:
            if response.status_code == 401 or is_authentication_failure(message):
                raise AuthenticationFailure(operation, message, returncode=code)
            raise RemoteOperationError(operation, message, returncode=code)

        raise GitCommandError(message, operation=operation, returncode=code)

    async def show_top_level(self, path: Path | str) -> Optional[Path]:
        """Resolve the repository root containing ``path``.

        Returns:
            The root, or None when ``path`` is outside any repository.
        """
        try:
            data = await self._post("show_top_level", {"current_path": str(path)})
        except GitCommandError:
            return None
        top = data.get("top_repo_path")
        return Path(top) if top else None

    async def status(self, repo_path: Path | str) -> tuple[FileStatusEntry, ...]:
        try:
            data = await self._post("status", {"current_path": str(repo_path)})
        except GitCommandError as e:
            raise NotARepositoryError(str(repo_path)) from e
        return parse_status_files(data.get("files") or [])

    async def current_branch(self, repo_path: Path | str) -> Optional[str]:
        """Name of the checked-out branch, or None when HEAD is detached/unborn."""
        data = await self._post("branch", {"current_path": str(repo_path)})
        current = data.get("current_branch")
        if isinstance(current, dict):
            return current.get("name")
        for branch in data.get("branches") or []:
            if branch.get("is_current_branch"):
                return branch.get("name")
        return None

    async def add(self, repo_path: Path | str, files: Sequence[str]) -> None:
        await self._post(
            "add",
            {"add_all": False, "filename": list(files), "top_repo_path": str(repo_path)},
        )

    async def reset(self, repo_path: Path | str, files: Sequence[str]) -> None:
        await self._post(
            "reset",
            {"reset_all": False, "filename": list(files), "top_repo_path": str(repo_path)},
        )

    async def checkout(self, repo_path: Path | str, filenames: Sequence[str]) -> None:
        await self._post(
            "checkout",
            {
                "checkout_branch": False,
                "checkout_all": False,
                "filenames": list(filenames),
                "top_repo_path": str(repo_path),
            },
        )

    async def _remote(
        self,
        operation: str,
        payload: dict[str, Any],
        credentials: Optional[Credentials],
    ) -> str:
        if credentials is not None:
            payload["auth"] = credentials.to_payload()
        data = await self._post(operation, payload)
        return str(data.get("message") or "")

    async def push(self, repo_path: Path | str, credentials: Optional[Credentials] = None) -> str:
        return await self._remote("push", {"current_path": str(repo_path)}, credentials)

    async def pull(self, repo_path: Path | str, credentials: Optional[Credentials] = None) -> str:
        return await self._remote("pull", {"current_path": str(repo_path)}, credentials)

    async def ignore(self, repo_path: Path | str, files: Sequence[str], by_extension: bool) -> None:
        await self._post(
            "ignore",
            {
                "top_repo_path": str(repo_path),
                "file_path": list(files),
                "use_extension": by_extension,
            },
        )

    async def init(self, repo_path: Path | str) -> None:
        await self._post("init", {"current_path": str(repo_path)})

    async def clone(
        self, url: str, target_path: Path | str, credentials: Optional[Credentials] = None
    ) -> str:
        return await self._remote(
            "clone",
            {"current_path": str(target_path), "clone_url": url},
            credentials,
        )

    async def add_remote(self, repo_path: Path | str, url: str, name: Optional[str] = None) -> None:
        payload: dict[str, Any] = {"top_repo_path": str(repo_path), "url": url}
        if name:
            payload["name"] = name
        await self._post("remote/add", payload)

    async def ensure_gitignore(self, repo_path: Path | str) -> Path:
        """Make sure ``.gitignore`` exists at the root and return its path."""
        await self._post("ignore", {"top_repo_path": str(repo_path)})
        return Path(repo_path) / ".gitignore"
