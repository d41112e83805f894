"""Tests for the console prompts."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from rich.console import Console

from gitpanel.git.sequencer import CREDENTIALS_REJECTED, CredentialRequest, Operation
from gitpanel.ui.credentials import ConsoleConfirm, ConsoleCredentialPrompt, ConsoleTextPrompt


def make_session(*answers):
    session = MagicMock()
    session.prompt_async = AsyncMock(side_effect=list(answers))
    return session


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=100, color_system=None)


class TestConsoleCredentialPrompt:
    """Tests for ConsoleCredentialPrompt."""

    @pytest.mark.asyncio
    async def test_returns_attempt(self, console):
        """Test entered credentials are returned with the retry count."""
        session = make_session("alice\n", "hunter2")
        prompt = ConsoleCredentialPrompt(console, _session=session)

        attempt = await prompt(CredentialRequest(Operation.PUSH, retry_count=2))

        assert attempt.username == "alice"
        assert attempt.password == "hunter2"
        assert attempt.retry_count == 2
        assert session.prompt_async.call_args_list[1].kwargs == {"is_password": True}

    @pytest.mark.asyncio
    async def test_empty_username_cancels(self, console):
        """Test an empty username cancels without asking for a password."""
        session = make_session("  ")
        prompt = ConsoleCredentialPrompt(console, _session=session)

        assert await prompt(CredentialRequest(Operation.PULL, retry_count=0)) is None
        assert session.prompt_async.call_count == 1

    @pytest.mark.asyncio
    async def test_interrupt_cancels(self, console):
        """Test Ctrl-C cancels."""
        session = make_session(KeyboardInterrupt())
        prompt = ConsoleCredentialPrompt(console, _session=session)

        assert await prompt(CredentialRequest(Operation.PUSH, retry_count=0)) is None

    @pytest.mark.asyncio
    async def test_retry_shows_error(self, console):
        """Test the rejection message is shown only on retries."""
        prompt = ConsoleCredentialPrompt(console, _session=make_session("alice", "pw"))
        await prompt(CredentialRequest(Operation.PUSH, retry_count=0))
        assert CREDENTIALS_REJECTED not in console.export_text()

        prompt = ConsoleCredentialPrompt(console, _session=make_session("alice", "pw"))
        await prompt(CredentialRequest(Operation.PUSH, retry_count=1, error=CREDENTIALS_REJECTED))
        assert CREDENTIALS_REJECTED in console.export_text()

    @pytest.mark.asyncio
    async def test_password_not_printed(self, console):
        """Test the password never reaches the console."""
        prompt = ConsoleCredentialPrompt(console, _session=make_session("alice", "hunter2"))
        await prompt(CredentialRequest(Operation.PUSH, retry_count=0))
        assert "hunter2" not in console.export_text()


class TestConsoleConfirm:
    """Tests for ConsoleConfirm."""

    @pytest.mark.asyncio
    async def test_assume_yes(self, console):
        """Test --yes skips the question."""
        confirm = ConsoleConfirm(console, assume_yes=True)
        assert await confirm("Discard changes", "Sure?") is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer,expected", [("y", True), ("YES", True), ("n", False), ("", False)])
    async def test_answers(self, console, answer, expected):
        """Test only yes accepts."""
        with patch("gitpanel.ui.credentials.PromptSession", return_value=make_session(answer)):
            confirm = ConsoleConfirm(console)
            assert await confirm("Discard changes", "Sure?") is expected


class TestConsoleTextPrompt:
    """Tests for ConsoleTextPrompt."""

    @pytest.mark.asyncio
    async def test_text(self):
        """Test the entered text is stripped."""
        with patch("gitpanel.ui.credentials.PromptSession", return_value=make_session(" https://x.git ")):
            assert await ConsoleTextPrompt()("URL") == "https://x.git"

    @pytest.mark.asyncio
    async def test_eof_cancels(self):
        """Test Ctrl-D cancels."""
        with patch("gitpanel.ui.credentials.PromptSession", return_value=make_session(EOFError())):
            assert await ConsoleTextPrompt()("URL") is None
