"""Assembly of the git panel and its wiring to host notifications."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from gitpanel.commands.actions import AskText, Confirm, FileOpener, GitActions, UrlOpener
from gitpanel.commands.registry import CommandRegistry
from gitpanel.config.settings import Settings
from gitpanel.git.backend import GitBackend, HttpGitBackend
from gitpanel.git.diff import DiffContext, DiffViewRegistry
from gitpanel.git.sequencer import CredentialPrompt
from gitpanel.git.signals import Subscription
from gitpanel.git.tracker import RepositoryContextTracker
from gitpanel.ui.status_bar import ActionProgressItem, BranchStatusItem

logger = logging.getLogger(__name__)


class GitExtension:
    """Owns one tracker and everything that depends on it.

    Host notifications arrive as plain calls (``notify_*``) and are turned
    into tasks on the running loop; ``wait_idle`` waits for them.
    """

    def __init__(
        self,
        settings: Settings,
        backend: GitBackend,
        credential_prompt: CredentialPrompt,
        create_diff_view: Callable[[DiffContext], Any],
        activate_view: Callable[[Any], None],
        confirm: Optional[Confirm] = None,
        ask_text: Optional[AskText] = None,
        open_file: Optional[FileOpener] = None,
        open_url: Optional[UrlOpener] = None,
        show_panel: Optional[Callable[[], None]] = None,
    ):
        self.settings = settings
        self.backend = backend
        self.tracker = RepositoryContextTracker(backend)
        self.diff_views: DiffViewRegistry = DiffViewRegistry(create_diff_view, activate_view)
        self.actions = GitActions(
            tracker=self.tracker,
            backend=backend,
            settings=settings,
            diff_views=self.diff_views,
            credential_prompt=credential_prompt,
            confirm=confirm,
            ask_text=ask_text,
            open_file=open_file,
            open_url=open_url,
            show_panel=show_panel,
        )
        self.commands = CommandRegistry()
        self.actions.register_commands(self.commands)

        self.branch_item = BranchStatusItem()
        self.progress_item = ActionProgressItem()
        self._subscriptions: list[Subscription] = []
        self._tasks: set[asyncio.Task] = set()
        self._active = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credential_prompt: CredentialPrompt,
        create_diff_view: Callable[[DiffContext], Any],
        activate_view: Callable[[Any], None],
        **kwargs: Any,
    ) -> "GitExtension":
        """Build an extension talking to the configured HTTP backend."""
        backend = HttpGitBackend(
            base_url=settings.backend.base_url,
            token=settings.backend.token,
            timeout=settings.backend.timeout,
        )
        return cls(settings, backend, credential_prompt, create_diff_view, activate_view, **kwargs)

    @property
    def is_active(self) -> bool:
        return self._active

    async def activate(self, restored_path: Path | str) -> None:
        """Bind to the directory the host restored and attach the status bar."""
        if self._active:
            return
        self._active = True
        self.branch_item.attach(self.tracker)
        self._subscriptions.append(
            self.actions.remote_activity.connect(self.progress_item.update)
        )
        await self.tracker.on_restored(restored_path)
        logger.info("Git extension activated")

    def _schedule(self, coro: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def notify_directory_changed(self, path: Path | str) -> asyncio.Task:
        return self._schedule(self.tracker.on_active_directory_changed(path))

    def notify_file_changed(self) -> asyncio.Task:
        return self._schedule(self.tracker.on_file_changed())

    async def wait_idle(self) -> None:
        """Wait for every scheduled notification to be handled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def dispose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

        for subscription in self._subscriptions:
            subscription.dispose()
        self._subscriptions.clear()
        self.branch_item.detach()
        self.tracker.dispose()
        self.diff_views.clear()

        close = getattr(self.backend, "close", None)
        if close is not None:
            await close()
        self._active = False
        logger.info("Git extension disposed")
