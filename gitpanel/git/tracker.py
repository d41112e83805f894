"""Tracking of the currently active repository.

The tracker owns the only shared piece of state in the core: which
repository root is active and which branch it is on. Everything else reads
that state through the tracker's properties or its signals and never
writes it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from gitpanel.errors import GitPanelError, NotARepositoryError
from gitpanel.git.backend import GitBackend
from gitpanel.git.signals import Signal
from gitpanel.git.status import FileStatusEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositoryStatus:
    """Snapshot of the active repository.

    ``current_branch`` is only meaningful while ``root_path`` is set.
    """

    root_path: Optional[Path] = None
    current_branch: Optional[str] = None

    @property
    def is_bound(self) -> bool:
        return self.root_path is not None


UNBOUND = RepositoryStatus()


class RepositoryContextTracker:
    """Holds the active repository root and branch.

    Two states: Unbound (no root) and Bound. Host notifications move the
    tracker between them:

    - ``on_restored`` / ``on_active_directory_changed`` resolve the
      repository containing a directory and bind to it (or unbind).
    - ``on_file_changed`` re-queries status and branch without touching the
      root.

    Backend failures never escape: the tracker falls back to Unbound and
    subscribers learn about it through ``repository_changed``.

    Overlapping refreshes are applied in the order their responses arrive.
    A response is dropped when the root changed while it was in flight, so
    a slow answer for a previous repository cannot overwrite the current one.
    """

    def __init__(self, backend: GitBackend):
        self._backend = backend
        self._state = UNBOUND
        self._files: tuple[FileStatusEntry, ...] = ()
        self._active_directory: Optional[Path] = None
        self._path_generation = 0
        self._restored = False

        self.repository_changed: Signal[RepositoryStatus] = Signal("repository_changed")
        self.status_changed: Signal[tuple[FileStatusEntry, ...]] = Signal("status_changed")

    @property
    def state(self) -> RepositoryStatus:
        return self._state

    @property
    def root_path(self) -> Optional[Path]:
        return self._state.root_path

    @property
    def current_branch(self) -> Optional[str]:
        return self._state.current_branch

    @property
    def files(self) -> tuple[FileStatusEntry, ...]:
        return self._files

    @property
    def is_bound(self) -> bool:
        return self._state.is_bound

    @property
    def active_directory(self) -> Optional[Path]:
        """Last directory reported by the host, bound or not."""
        return self._active_directory

    def file_path(self, relative_path: str) -> Path:
        """Absolute path of a repository-relative file.

        Raises:
            NotARepositoryError: If no repository is active.
        """
        if self._state.root_path is None:
            raise NotARepositoryError(str(self._active_directory or relative_path))
        return self._state.root_path / relative_path

    def _apply(self, state: RepositoryStatus, files: tuple[FileStatusEntry, ...]) -> None:
        previous_state = self._state
        previous_files = self._files
        self._state = state
        self._files = files

        if state != previous_state:
            logger.info(
                f"Repository changed: {state.root_path or '(none)'}"
                f" on {state.current_branch or '(no branch)'}"
            )
            self.repository_changed.emit(state)
        if files != previous_files:
            self.status_changed.emit(files)

    def _unbind(self, reason: str) -> None:
        if self._state.is_bound:
            logger.warning(f"Leaving repository {self._state.root_path}: {reason}")
        self._apply(UNBOUND, ())

    async def _query(self, root: Path) -> tuple[Optional[str], tuple[FileStatusEntry, ...]]:
        files, branch = await asyncio.gather(
            self._backend.status(root),
            self._backend.current_branch(root),
        )
        return branch, tuple(files)

    async def set_active_directory(self, path: Path | str) -> None:
        """Bind to the repository containing ``path``, or unbind.

        When several calls overlap only the most recently requested path is
        applied; earlier resolutions are discarded when they complete.
        """
        directory = Path(path)
        self._active_directory = directory
        self._path_generation += 1
        generation = self._path_generation

        try:
            root = await self._backend.show_top_level(directory)
            if root is None:
                branch, files = None, ()
            else:
                branch, files = await self._query(root)
        except GitPanelError as e:
            if generation == self._path_generation:
                self._unbind(str(e))
            return

        if generation != self._path_generation:
            logger.debug(f"Discarding stale resolution for {directory}")
            return

        if root is None:
            if self._state.is_bound:
                logger.info(f"{directory} is not inside a repository")
            self._apply(UNBOUND, ())
            return

        self._apply(RepositoryStatus(root_path=root, current_branch=branch), files)

    async def refresh_status(self) -> None:
        """Re-fetch status and branch for the bound repository.

        Safe to call concurrently. Never raises; failures unbind the tracker.
        When unbound, the last active directory is resolved again so the
        tracker rebinds once the backend is reachable.
        """
        root = self._state.root_path
        if root is None:
            if self._active_directory is not None:
                await self.set_active_directory(self._active_directory)
            return

        try:
            branch, files = await self._query(root)
        except GitPanelError as e:
            if self._state.root_path == root:
                self._unbind(str(e))
            return

        if self._state.root_path != root:
            logger.debug(f"Discarding status for previous repository {root}")
            return

        self._apply(RepositoryStatus(root_path=root, current_branch=branch), files)

    async def on_active_directory_changed(self, path: Path | str) -> None:
        if self._active_directory is not None and Path(path) == self._active_directory:
            await self.refresh_status()
            return
        await self.set_active_directory(path)

    async def on_file_changed(self) -> None:
        await self.refresh_status()

    async def on_restored(self, path: Path | str) -> None:
        """Initial bind once the host has restored its layout. Fires once."""
        if self._restored:
            return
        self._restored = True
        await self.set_active_directory(path)

    async def initialize(self, path: Path | str) -> None:
        """Create a repository at ``path`` and bind to it.

        Raises:
            GitCommandError: If the backend could not initialize the repository.
        """
        await self._backend.init(path)
        await self.set_active_directory(path)

    def dispose(self) -> None:
        self.repository_changed.disconnect_all()
        self.status_changed.disconnect_all()
