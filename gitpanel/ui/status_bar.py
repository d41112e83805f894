"""Status bar items for the current branch and running remote operations."""

from dataclasses import dataclass, field
from typing import Optional

from rich.console import Group, RenderableType
from rich.spinner import Spinner
from rich.text import Text

from gitpanel.git.signals import Subscription
from gitpanel.git.tracker import RepositoryContextTracker, RepositoryStatus

BRANCH_SYMBOL = "⎇"


@dataclass
class BranchStatusItem:
    """Shows the current branch; renders nothing while unbound."""

    use_unicode: bool = True
    branch: Optional[str] = None
    _subscription: Optional[Subscription] = field(default=None, repr=False)

    def attach(self, tracker: RepositoryContextTracker) -> None:
        """Follow the tracker's repository changes."""
        self.detach()
        self.update(tracker.state)
        self._subscription = tracker.repository_changed.connect(self.update)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    def update(self, state: RepositoryStatus) -> None:
        self.branch = state.current_branch if state.is_bound else None

    def render(self) -> Text:
        text = Text()
        if not self.branch:
            return text
        symbol = BRANCH_SYMBOL if self.use_unicode else "branch:"
        text.append(symbol, style="magenta")
        text.append(" ")
        text.append(self.branch, style="bold")
        return text

    def __rich__(self) -> RenderableType:
        return self.render()


@dataclass
class ActionProgressItem:
    """Shows a label and a spinner while a remote operation runs."""

    label: Optional[str] = None

    def update(self, label: Optional[str]) -> None:
        self.label = label

    @property
    def active(self) -> bool:
        return bool(self.label)

    def render(self) -> RenderableType:
        if not self.label:
            return Text()
        return Spinner("dots", text=Text(self.label, style="cyan"))

    def __rich__(self) -> RenderableType:
        return self.render()


def render_status_bar(branch: BranchStatusItem, progress: ActionProgressItem) -> RenderableType:
    """Both items stacked, skipping empty ones."""
    parts = []
    if branch.branch:
        parts.append(branch.render())
    if progress.active:
        parts.append(progress.render())
    return Group(*parts)
