"""User-facing git actions over batches of selected files.

Actions never raise backend errors to the host: each returns a
CommandResult listing what was acted on and the errors met on the way.
Deciding whether to show a dialog is left to the presentation layer.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from gitpanel.commands.registry import Command, CommandArgs, CommandIDs, CommandRegistry
from gitpanel.config.settings import Settings
from gitpanel.errors import (
    FileDeletedError,
    GitPanelError,
    NotARepositoryError,
)
from gitpanel.git.backend import Credentials, GitBackend
from gitpanel.git.diff import DiffContext, DiffContextResolver, DiffViewRegistry
from gitpanel.git.sequencer import (
    CredentialPrompt,
    Operation,
    Outcome,
    OutcomeStatus,
    run_with_credential_retry,
)
from gitpanel.git.signals import Signal
from gitpanel.git.status import FileStatusCategory, FileStatusEntry, file_extension
from gitpanel.git.tracker import RepositoryContextTracker

logger = logging.getLogger(__name__)

RESOURCES = [
    {
        "text": "Set Up Remotes",
        "url": "https://www.atlassian.com/git/tutorials/setting-up-a-repository",
    },
    {
        "text": "Git Documentation",
        "url": "https://git-scm.com/doc",
    },
]

# (title, body) -> accepted
Confirm = Callable[[str, str], Awaitable[bool]]
# placeholder -> text, None when cancelled
AskText = Callable[[str], Awaitable[Optional[str]]]
FileOpener = Callable[[Path], Union[None, Awaitable[None]]]
UrlOpener = Callable[[str], None]


async def _accept(title: str, body: str) -> bool:
    return True


async def _no_text(placeholder: str) -> Optional[str]:
    return None


@dataclass(frozen=True)
class DiffTarget:
    """A file selected for diffing, with what the host knows about it."""

    file_path: str
    status: Optional[FileStatusCategory | str] = None
    is_text: bool = False
    context: Optional[DiffContext] = None
    entry: Optional[FileStatusEntry] = None

    @classmethod
    def from_entry(cls, entry: FileStatusEntry, is_text: bool = False) -> "DiffTarget":
        return cls(file_path=entry.path, status=entry.category, is_text=is_text, entry=entry)


@dataclass
class CommandResult:
    """What an action did.

    Attributes:
        command_id: The command that ran.
        paths: Repository-relative paths the action was applied to.
        errors: Failures met; the action carried on where it could.
        cancelled: The user declined a confirmation.
        value: Action-specific payload (views opened, outcome, ...).
    """

    command_id: str
    paths: list[str] = field(default_factory=list)
    errors: list[GitPanelError] = field(default_factory=list)
    cancelled: bool = False
    value: Any = None

    @property
    def ok(self) -> bool:
        return not self.errors and not self.cancelled


def _selected(args: CommandArgs) -> list[Any]:
    return list(args.get("files") or [])


def discard_plan(files: Sequence[FileStatusEntry]) -> tuple[list[str], list[str]]:
    """Split files into (paths to reset, paths to checkout) for a discard.

    Staged and partially-staged files are reset. Unstaged files, and
    partially-staged files not newly added, are checked out afterwards;
    a reset turns an added file into an untracked one that checkout would
    fail on.
    """
    to_reset = [
        f.path for f in files
        if f.category in (FileStatusCategory.STAGED, FileStatusCategory.PARTIALLY_STAGED)
    ]
    to_checkout = [
        f.path for f in files
        if f.category == FileStatusCategory.UNSTAGED
        or (f.category == FileStatusCategory.PARTIALLY_STAGED and f.x != "A")
    ]
    return to_reset, to_checkout


class GitActions:
    """Binds user actions to the tracker, backend, diff views and sequencer.

    Args:
        tracker: Source of the active repository.
        backend: Git backend service client.
        settings: Application settings (toggles are flipped in memory).
        diff_views: Registry of open diff views.
        credential_prompt: Asks for credentials during push/pull.
        confirm: Asks the user to confirm destructive actions.
        ask_text: Asks the user for a single line of text.
        open_file: Opens a file in the host.
        open_url: Opens a URL in the host.
        show_panel: Brings the git side panel to front.
    """

    def __init__(
        self,
        tracker: RepositoryContextTracker,
        backend: GitBackend,
        settings: Settings,
        diff_views: DiffViewRegistry,
        credential_prompt: CredentialPrompt,
        confirm: Optional[Confirm] = None,
        ask_text: Optional[AskText] = None,
        open_file: Optional[FileOpener] = None,
        open_url: Optional[UrlOpener] = None,
        show_panel: Optional[Callable[[], None]] = None,
    ):
        self.tracker = tracker
        self.backend = backend
        self.settings = settings
        self.diff_views = diff_views
        self.credential_prompt = credential_prompt
        self.confirm = confirm or _accept
        self.ask_text = ask_text or _no_text
        self.open_file = open_file
        self.open_url = open_url
        self.show_panel = show_panel
        self.resolver = DiffContextResolver(settings.diff.supported_extensions)

        # Label of the running remote operation, None when it finishes
        self.remote_activity: Signal[Optional[str]] = Signal("remote_activity")

    def _root(self) -> Path:
        root = self.tracker.root_path
        if root is None:
            raise NotARepositoryError(str(self.tracker.active_directory or "."))
        return root

    def _fail(self, result: CommandResult, error: GitPanelError) -> CommandResult:
        logger.warning(f"{result.command_id} failed: {error.message}")
        result.errors.append(error)
        return result

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    async def add(self, files: Sequence[FileStatusEntry]) -> CommandResult:
        """Stage (or start tracking) the selected files."""
        result = CommandResult(CommandIDs.git_file_add)
        paths = [f.path for f in files]
        if not paths:
            return result
        try:
            await self.backend.add(self._root(), paths)
        except GitPanelError as e:
            return self._fail(result, e)
        result.paths = paths
        await self.tracker.refresh_status()
        return result

    async def unstage(self, files: Sequence[FileStatusEntry]) -> CommandResult:
        """Unstage the selected files; staged deletions are left alone."""
        result = CommandResult(CommandIDs.git_file_unstage)
        paths = [f.path for f in files if f.x != "D"]
        if not paths:
            return result
        try:
            await self.backend.reset(self._root(), paths)
        except GitPanelError as e:
            return self._fail(result, e)
        result.paths = paths
        await self.tracker.refresh_status()
        return result

    async def discard(self, files: Sequence[FileStatusEntry]) -> CommandResult:
        """Permanently discard the changes of the selected files."""
        result = CommandResult(CommandIDs.git_file_discard)
        if not files:
            return result

        target = files[0].path if len(files) == 1 else "all selected files"
        accepted = await self.confirm(
            "Discard changes",
            f"Are you sure you want to permanently discard changes to {target}? "
            "This action cannot be undone.",
        )
        if not accepted:
            result.cancelled = True
            return result

        to_reset, to_checkout = discard_plan(files)
        try:
            root = self._root()
            if to_reset:
                await self.backend.reset(root, to_reset)
            if to_checkout:
                await self.backend.checkout(root, to_checkout)
        except GitPanelError as e:
            self._fail(result, e)
        else:
            result.paths = list(dict.fromkeys(to_reset + to_checkout))
        await self.tracker.refresh_status()
        return result

    async def ignore(self, files: Sequence[FileStatusEntry]) -> CommandResult:
        """Add the selected files to .gitignore."""
        result = CommandResult(CommandIDs.git_ignore)
        paths = [f.path for f in files]
        if not paths:
            return result
        try:
            await self.backend.ignore(self._root(), paths, False)
        except GitPanelError as e:
            return self._fail(result, e)
        result.paths = paths
        await self.tracker.refresh_status()
        return result

    async def ignore_extension(self, file: FileStatusEntry) -> CommandResult:
        """Ignore every file sharing the extension of ``file``."""
        result = CommandResult(CommandIDs.git_ignore_extension)
        extension = file.extension
        if not extension:
            return result

        accepted = await self.confirm(
            "Ignore file extension",
            f"Are you sure you want to ignore all {extension} files within this git repository?",
        )
        if not accepted:
            result.cancelled = True
            return result

        try:
            await self.backend.ignore(self._root(), [file.path], True)
        except GitPanelError as e:
            return self._fail(result, e)
        result.paths = [file.path]
        await self.tracker.refresh_status()
        return result

    # ------------------------------------------------------------------
    # Open and diff
    # ------------------------------------------------------------------

    async def open(self, files: Sequence[FileStatusEntry]) -> CommandResult:
        """Open the selected files in the host.

        Deleted files are skipped, and reported when they are the whole
        selection. Directories are never opened.
        """
        result = CommandResult(CommandIDs.git_file_open)
        for file in files:
            if file.is_deleted:
                if len(files) == 1:
                    self._fail(result, FileDeletedError(file.path))
                continue
            if file.is_directory:
                logger.info(f"Cannot open a folder here: {file.path}")
                continue
            try:
                path = self.tracker.file_path(file.path)
                if self.open_file is not None:
                    opened = self.open_file(path)
                    if inspect.isawaitable(opened):
                        await opened
            except GitPanelError as e:
                self._fail(result, e)
                continue
            result.paths.append(file.path)
        return result

    def diff(self, targets: Sequence[DiffTarget | FileStatusEntry]) -> CommandResult:
        """Open (or focus) a diff view for each selected file.

        ``result.value`` lists the views, new or focused, in selection order.
        """
        result = CommandResult(CommandIDs.git_file_diff, value=[])
        normalized = [
            DiffTarget.from_entry(t) if isinstance(t, FileStatusEntry) else t
            for t in targets
        ]
        for target in normalized:
            try:
                if target.entry is not None and target.entry.is_deleted:
                    if len(normalized) == 1:
                        raise FileDeletedError(target.file_path)
                    continue
                context = self.resolver.resolve(
                    target.file_path,
                    context=target.context,
                    status=target.status,
                    is_text=target.is_text,
                )
            except GitPanelError as e:
                self._fail(result, e)
                continue

            view, _created = self.diff_views.open(context)
            result.paths.append(target.file_path)
            result.value.append(view)
        return result

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    async def _run_remote(self, operation: Operation, command_id: str) -> CommandResult:
        result = CommandResult(command_id)
        try:
            root = self._root()
        except GitPanelError as e:
            return self._fail(result, e)

        async def execute(op: Operation, credentials: Optional[Credentials]) -> str:
            if op == Operation.PUSH:
                return await self.backend.push(root, credentials)
            return await self.backend.pull(root, credentials)

        self.remote_activity.emit(f"{operation.title}...")
        try:
            outcome: Outcome = await run_with_credential_retry(
                operation,
                self.credential_prompt,
                execute,
                max_attempts=self.settings.remote.max_credential_attempts,
            )
        finally:
            self.remote_activity.emit(None)

        result.value = outcome
        if outcome.status == OutcomeStatus.CANCELLED:
            result.cancelled = True
        elif outcome.error is not None:
            result.errors.append(outcome.error)
        await self.tracker.refresh_status()
        return result

    async def push(self) -> CommandResult:
        return await self._run_remote(Operation.PUSH, CommandIDs.git_push)

    async def pull(self) -> CommandResult:
        return await self._run_remote(Operation.PULL, CommandIDs.git_pull)

    # ------------------------------------------------------------------
    # Repository management
    # ------------------------------------------------------------------

    async def init(self, path: Optional[Path | str] = None) -> CommandResult:
        """Make ``path`` (default: the active directory) a repository."""
        result = CommandResult(CommandIDs.git_init)
        target = path or self.tracker.active_directory
        if target is None:
            return self._fail(result, NotARepositoryError("."))

        accepted = await self.confirm(
            "Initialize a Repository",
            "Do you really want to make this directory a Git Repo?",
        )
        if not accepted:
            result.cancelled = True
            return result

        try:
            await self.tracker.initialize(target)
        except GitPanelError as e:
            return self._fail(result, e)
        result.paths = [str(target)]
        return result

    async def clone(self, url: Optional[str] = None, path: Optional[Path | str] = None) -> CommandResult:
        """Clone ``url`` into ``path`` (default: the active directory)."""
        result = CommandResult(CommandIDs.git_clone)
        if not url:
            url = await self.ask_text("Enter the Clone URI of the repository")
        if not url:
            result.cancelled = True
            return result
        target = path or self.tracker.active_directory or Path.cwd()
        try:
            result.value = await self.backend.clone(url, target)
        except GitPanelError as e:
            return self._fail(result, e)
        result.paths = [str(target)]
        return result

    async def add_remote(self, url: Optional[str] = None, name: Optional[str] = None) -> CommandResult:
        """Add a remote, asking for its URL when none is given."""
        result = CommandResult(CommandIDs.git_add_remote)
        try:
            root = self._root()
        except GitPanelError as e:
            return self._fail(result, e)

        if not url:
            url = await self.ask_text("Remote Git repository URL")
        if not url:
            result.cancelled = True
            return result

        try:
            await self.backend.add_remote(root, url, name)
        except GitPanelError as e:
            return self._fail(result, e)
        result.value = url
        return result

    async def open_gitignore(self) -> CommandResult:
        result = CommandResult(CommandIDs.git_open_gitignore)
        try:
            gitignore = await self.backend.ensure_gitignore(self._root())
            if self.open_file is not None:
                opened = self.open_file(gitignore)
                if inspect.isawaitable(opened):
                    await opened
        except GitPanelError as e:
            return self._fail(result, e)
        result.paths = [".gitignore"]
        result.value = gitignore
        return result

    def terminal_command(self) -> Optional[str]:
        """Shell line changing into the repository root, or None when unbound."""
        root = self.tracker.root_path
        if root is None:
            return None
        escaped = str(root).replace('"', '\\"')
        return f'cd "{escaped}"\n'

    def open_resource(self, url: str) -> None:
        if url and self.open_url is not None:
            self.open_url(url)

    # ------------------------------------------------------------------
    # Settings toggles
    # ------------------------------------------------------------------

    def toggle_simple_staging(self) -> bool:
        staging = self.settings.staging
        staging.simple_staging = not staging.simple_staging
        return staging.simple_staging

    def toggle_double_click_diff(self) -> bool:
        diff = self.settings.diff
        diff.double_click_diff = not diff.double_click_diff
        return diff.double_click_diff

    # ------------------------------------------------------------------
    # Command registration
    # ------------------------------------------------------------------

    def register_commands(self, registry: CommandRegistry) -> None:
        """Register every git command with ``registry``."""
        bound = lambda args: self.tracker.is_bound  # noqa: E731
        unbound = lambda args: not self.tracker.is_bound  # noqa: E731

        def add_label(args: CommandArgs) -> str:
            files = _selected(args)
            if not files:
                return "Add"
            return "Track" if files[0].category == FileStatusCategory.UNTRACKED else "Stage"

        def add_caption(args: CommandArgs) -> str:
            files = _selected(args)
            if not files:
                return "Add the selected files changes"
            if files[0].category == FileStatusCategory.UNTRACKED:
                return "Start tracking the selected files"
            return "Stage the changes of the selected files"

        def ignore_extension_label(args: CommandArgs) -> str:
            files = _selected(args)
            extension = file_extension(files[0].path) if files else ""
            return f"Ignore {extension} extension (add to .gitignore)"

        def ignore_extension_visible(args: CommandArgs) -> bool:
            files = _selected(args)
            return len(files) == 1 and bool(files[0].extension)

        async def ignore_extension(args: CommandArgs) -> CommandResult:
            files = _selected(args)
            if not files:
                return CommandResult(CommandIDs.git_ignore_extension)
            return await self.ignore_extension(files[0])

        commands = [
            Command(
                id=CommandIDs.git_ui,
                label="Git Interface",
                caption="Go to Git user interface",
                execute=lambda args: self.show_panel() if self.show_panel else None,
            ),
            Command(
                id=CommandIDs.git_terminal_command,
                label="Open Git Repository in Terminal",
                caption="Open a New Terminal to the Git Repository",
                execute=lambda args: self.terminal_command(),
                is_enabled=bound,
            ),
            Command(
                id=CommandIDs.git_init,
                label="Initialize a Repository",
                caption="Create an empty Git repository or reinitialize an existing one",
                execute=lambda args: self.init(args.get("path")),
                is_enabled=unbound,
            ),
            Command(
                id=CommandIDs.git_open_url,
                label=lambda args: str(args.get("text", "")),
                execute=lambda args: self.open_resource(str(args.get("url", ""))),
            ),
            Command(
                id=CommandIDs.git_toggle_simple_staging,
                label="Simple staging",
                execute=lambda args: self.toggle_simple_staging(),
                is_toggled=lambda args: self.settings.staging.simple_staging,
            ),
            Command(
                id=CommandIDs.git_toggle_double_click_diff,
                label="Double click opens diff",
                execute=lambda args: self.toggle_double_click_diff(),
                is_toggled=lambda args: self.settings.diff.double_click_diff,
            ),
            Command(
                id=CommandIDs.git_add_remote,
                label="Add Remote Repository",
                caption="Add a Git remote repository",
                execute=lambda args: self.add_remote(args.get("url"), args.get("name")),
                is_enabled=bound,
            ),
            Command(
                id=CommandIDs.git_clone,
                label="Clone a Repository",
                caption="Clone a repository from a URL",
                execute=lambda args: self.clone(args.get("url"), args.get("path")),
                is_enabled=unbound,
            ),
            Command(
                id=CommandIDs.git_open_gitignore,
                label="Open .gitignore",
                caption="Open .gitignore",
                execute=lambda args: self.open_gitignore(),
                is_enabled=bound,
            ),
            Command(
                id=CommandIDs.git_push,
                label="Push to Remote",
                caption="Push code to remote repository",
                execute=lambda args: self.push(),
                is_enabled=bound,
            ),
            Command(
                id=CommandIDs.git_pull,
                label="Pull from Remote",
                caption="Pull latest code from remote repository",
                execute=lambda args: self.pull(),
                is_enabled=bound,
            ),
            Command(
                id=CommandIDs.git_file_open,
                label="Open",
                caption="Open selected files",
                execute=lambda args: self.open(_selected(args)),
            ),
            Command(
                id=CommandIDs.git_file_diff,
                label="Diff",
                caption="Diff selected files",
                execute=lambda args: self.diff(_selected(args)),
            ),
            Command(
                id=CommandIDs.git_file_add,
                label=add_label,
                caption=add_caption,
                execute=lambda args: self.add(_selected(args)),
            ),
            Command(
                id=CommandIDs.git_file_unstage,
                label="Unstage",
                caption="Unstage the changes of the selected files",
                execute=lambda args: self.unstage(_selected(args)),
            ),
            Command(
                id=CommandIDs.git_file_discard,
                label="Discard",
                caption="Discard recent changes of selected files",
                execute=lambda args: self.discard(_selected(args)),
            ),
            Command(
                id=CommandIDs.git_ignore,
                label="Ignore these files (add to .gitignore)",
                caption="Ignore these files (add to .gitignore)",
                execute=lambda args: self.ignore(_selected(args)),
            ),
            Command(
                id=CommandIDs.git_ignore_extension,
                label=ignore_extension_label,
                caption="Ignore this file extension (add to .gitignore)",
                execute=ignore_extension,
                is_visible=ignore_extension_visible,
            ),
        ]
        for command in commands:
            registry.register(command)
