"""Git commands exposed to menus, context menus and the CLI."""

from gitpanel.commands.actions import (
    RESOURCES,
    CommandResult,
    DiffTarget,
    GitActions,
    discard_plan,
)
from gitpanel.commands.registry import (
    Command,
    CommandIDs,
    CommandRegistry,
)

__all__ = [
    "RESOURCES",
    "Command",
    "CommandIDs",
    "CommandRegistry",
    "CommandResult",
    "DiffTarget",
    "GitActions",
    "discard_plan",
]
