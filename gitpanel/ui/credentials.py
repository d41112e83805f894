"""Console prompts for credentials and confirmations."""

from dataclasses import dataclass, field
from typing import Optional

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from gitpanel.git.sequencer import CredentialAttempt, CredentialRequest


@dataclass
class ConsoleCredentialPrompt:
    """Asks for a username and password on the terminal.

    An empty username, Ctrl-C or Ctrl-D cancels, which ends the retry loop.
    Usable directly as the sequencer's credential prompt.
    """

    console: Console
    _session: Optional[PromptSession] = field(default=None, repr=False)

    @property
    def session(self) -> PromptSession:
        if self._session is None:
            self._session = PromptSession()
        return self._session

    def _render(self, request: CredentialRequest) -> Panel:
        content = Text()
        content.append(request.message, style="bold")
        content.append("\n")
        if request.is_retry:
            content.append(request.error, style="red")
            content.append("\n")
        content.append("Leave the username empty to cancel.", style="dim")
        return Panel(
            content,
            title=f"{request.operation.title}: credentials required",
            title_align="left",
            border_style="yellow",
            padding=(1, 2),
        )

    async def __call__(self, request: CredentialRequest) -> Optional[CredentialAttempt]:
        self.console.print()
        self.console.print(self._render(request))

        try:
            username = (await self.session.prompt_async("Username: ")).strip()
            if not username:
                return None
            password = await self.session.prompt_async("Password: ", is_password=True)
        except (EOFError, KeyboardInterrupt):
            return None

        return CredentialAttempt(
            username=username,
            password=password,
            retry_count=request.retry_count,
        )


@dataclass
class ConsoleConfirm:
    """Yes/no confirmation on the terminal; anything but yes declines."""

    console: Console
    assume_yes: bool = False

    async def __call__(self, title: str, body: str) -> bool:
        if self.assume_yes:
            return True

        self.console.print(Panel(body, title=title, title_align="left", border_style="red"))
        session: PromptSession = PromptSession()
        try:
            response = await session.prompt_async("Proceed? [y/N]: ")
        except (EOFError, KeyboardInterrupt):
            return False
        return response.strip().lower() in ("y", "yes")


@dataclass
class ConsoleTextPrompt:
    """Single line of text; empty input cancels."""

    async def __call__(self, placeholder: str) -> Optional[str]:
        session: PromptSession = PromptSession()
        try:
            value = await session.prompt_async(f"{placeholder}: ")
        except (EOFError, KeyboardInterrupt):
            return None
        return value.strip() or None
