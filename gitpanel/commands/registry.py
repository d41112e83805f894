"""Command registry for user-facing git actions.

Commands are identified by stable ids and carry the state-dependent
pieces the host menus need: label, caption, enablement, visibility and
toggle state. Each of these can depend on the invocation arguments (the
selected files, for context-menu commands).
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Optional, Union

from gitpanel.errors import CommandDisabledError, CommandNotFoundError

logger = logging.getLogger(__name__)

CommandArgs = dict[str, Any]

CommandHandler = Union[
    Callable[[CommandArgs], Any],
    Callable[[CommandArgs], Coroutine[Any, Any, Any]],
]

TextOrFactory = Union[str, Callable[[CommandArgs], str]]


class CommandIDs:
    """The command ids used by the git panel."""

    git_ui = "git:ui"
    git_terminal_command = "git:terminal-command"
    git_init = "git:init"
    git_open_url = "git:open-url"
    git_toggle_simple_staging = "git:toggle-simple-staging"
    git_toggle_double_click_diff = "git:toggle-double-click-diff"
    git_add_remote = "git:add-remote"
    git_clone = "git:clone"
    git_open_gitignore = "git:open-gitignore"
    git_push = "git:push"
    git_pull = "git:pull"
    # Context menu commands
    git_file_diff = "git:context-diff"
    git_file_discard = "git:context-discard"
    git_file_open = "git:context-open"
    git_file_unstage = "git:context-unstage"
    git_file_add = "git:context-add"
    git_ignore = "git:context-ignore"
    git_ignore_extension = "git:context-ignoreExtension"


def _always(args: CommandArgs) -> bool:
    return True


@dataclass
class Command:
    """A registered command.

    Attributes:
        id: Stable command id.
        execute: Handler receiving the invocation arguments.
        label: Menu label, or a function of the arguments.
        caption: Tooltip text, or a function of the arguments.
        is_enabled: Whether the command can run right now.
        is_visible: Whether menus should show the command.
        is_toggled: For toggle commands, the current toggle state.
    """

    id: str
    execute: CommandHandler
    label: TextOrFactory = ""
    caption: TextOrFactory = ""
    is_enabled: Callable[[CommandArgs], bool] = _always
    is_visible: Callable[[CommandArgs], bool] = _always
    is_toggled: Optional[Callable[[CommandArgs], bool]] = None

    def label_for(self, args: Optional[CommandArgs] = None) -> str:
        if callable(self.label):
            return self.label(args or {})
        return self.label

    def caption_for(self, args: Optional[CommandArgs] = None) -> str:
        if callable(self.caption):
            return self.caption(args or {})
        return self.caption


@dataclass
class CommandRegistry:
    """Registry of commands keyed by id.

    Example:
        >>> registry = CommandRegistry()
        >>> registry.register(Command(id="demo:hello", execute=lambda args: "hi"))
        >>> await registry.execute("demo:hello")
        'hi'
    """

    _commands: dict[str, Command] = field(default_factory=dict)

    def register(self, command: Command) -> None:
        """Register a command.

        Raises:
            ValueError: If a command with the same id is already registered.
        """
        if command.id in self._commands:
            raise ValueError(f"Command '{command.id}' is already registered")
        self._commands[command.id] = command
        logger.debug(f"Registered command: {command.id}")

    def unregister(self, command_id: str) -> bool:
        return self._commands.pop(command_id, None) is not None

    def get(self, command_id: str) -> Optional[Command]:
        return self._commands.get(command_id)

    def has(self, command_id: str) -> bool:
        return command_id in self._commands

    def list_commands(self) -> list[str]:
        return list(self._commands)

    def _require(self, command_id: str) -> Command:
        command = self._commands.get(command_id)
        if command is None:
            raise CommandNotFoundError(command_id)
        return command

    def is_enabled(self, command_id: str, args: Optional[CommandArgs] = None) -> bool:
        return self._require(command_id).is_enabled(args or {})

    def is_visible(self, command_id: str, args: Optional[CommandArgs] = None) -> bool:
        return self._require(command_id).is_visible(args or {})

    def is_toggled(self, command_id: str, args: Optional[CommandArgs] = None) -> bool:
        command = self._require(command_id)
        return bool(command.is_toggled and command.is_toggled(args or {}))

    def label(self, command_id: str, args: Optional[CommandArgs] = None) -> str:
        return self._require(command_id).label_for(args)

    def caption(self, command_id: str, args: Optional[CommandArgs] = None) -> str:
        return self._require(command_id).caption_for(args)

    async def execute(self, command_id: str, args: Optional[CommandArgs] = None) -> Any:
        """Run a command.

        Raises:
            CommandNotFoundError: If no command has this id.
            CommandDisabledError: If the command is currently disabled.
        """
        command = self._require(command_id)
        args = args or {}
        if not command.is_enabled(args):
            raise CommandDisabledError(command_id)

        logger.debug(f"Executing command: {command_id}")
        result = command.execute(args)
        if inspect.isawaitable(result):
            result = await result
        return result
