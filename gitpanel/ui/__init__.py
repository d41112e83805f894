"""Terminal presentation for GitPanel.

Status bar items rendered with Rich and prompt_toolkit prompts that plug
into the core as credential, confirmation and text collaborators.
"""

from gitpanel.ui.credentials import ConsoleConfirm, ConsoleCredentialPrompt, ConsoleTextPrompt
from gitpanel.ui.status_bar import ActionProgressItem, BranchStatusItem, render_status_bar

__all__ = [
    "ActionProgressItem",
    "BranchStatusItem",
    "ConsoleConfirm",
    "ConsoleCredentialPrompt",
    "ConsoleTextPrompt",
    "render_status_bar",
]
