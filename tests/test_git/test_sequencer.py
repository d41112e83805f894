"""Tests for push/pull credential retry."""

from typing import Optional

import pytest

from conftest import auth_failure
from gitpanel.errors import ErrorKind, RemoteOperationError
from gitpanel.git.backend import Credentials
from gitpanel.git.sequencer import (
    CREDENTIALS_REJECTED,
    CredentialAttempt,
    CredentialRequest,
    Operation,
    OutcomeStatus,
    run_with_credential_retry,
)


class ScriptedRemote:
    """Executor replaying a list of results (exceptions are raised)."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: list[Optional[Credentials]] = []

    async def __call__(self, operation: Operation, credentials: Optional[Credentials]) -> str:
        self.calls.append(credentials)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class ScriptedPrompt:
    """Credential prompt answering from a list; None cancels."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.requests: list[CredentialRequest] = []

    async def __call__(self, request: CredentialRequest) -> Optional[CredentialAttempt]:
        self.requests.append(request)
        username = self.answers.pop(0)
        if username is None:
            return None
        return CredentialAttempt(username=username, password="pw", retry_count=request.retry_count)


class TestCredentialRetry:
    """Tests for run_with_credential_retry."""

    @pytest.mark.asyncio
    async def test_success_without_prompt(self):
        """Test a first-try success never prompts."""
        remote = ScriptedRemote("Everything up-to-date")
        prompt = ScriptedPrompt()

        outcome = await run_with_credential_retry(Operation.PUSH, prompt, remote)

        assert outcome.status == OutcomeStatus.SUCCEEDED
        assert outcome.message == "Everything up-to-date"
        assert outcome.attempts == 1
        assert remote.calls == [None]
        assert prompt.requests == []

    @pytest.mark.asyncio
    async def test_retry_until_success(self):
        """Test two rejected attempts then success."""
        remote = ScriptedRemote(auth_failure(), auth_failure(), auth_failure(), "done")
        prompt = ScriptedPrompt("alice", "alice", "alice")

        outcome = await run_with_credential_retry(Operation.PUSH, prompt, remote)

        assert outcome.succeeded
        assert outcome.attempts == 4
        assert len(prompt.requests) == 3
        # The first prompt follows the credential-less attempt
        assert [r.error for r in prompt.requests] == ["", CREDENTIALS_REJECTED, CREDENTIALS_REJECTED]
        assert [r.retry_count for r in prompt.requests] == [0, 1, 2]
        assert remote.calls[0] is None
        assert all(c == Credentials("alice", "pw") for c in remote.calls[1:])

    @pytest.mark.asyncio
    async def test_cancel_stops_without_further_calls(self):
        """Test cancelling the prompt ends the sequence."""
        remote = ScriptedRemote(auth_failure())
        prompt = ScriptedPrompt(None)

        outcome = await run_with_credential_retry(Operation.PULL, prompt, remote)

        assert outcome.status == OutcomeStatus.CANCELLED
        assert outcome.error_kind == ErrorKind.AUTHENTICATION_FAILURE
        assert len(remote.calls) == 1

    @pytest.mark.asyncio
    async def test_non_auth_failure_is_terminal(self):
        """Test other failures are reported without prompting."""
        remote = ScriptedRemote(RemoteOperationError("push", "! [rejected] non-fast-forward"))
        prompt = ScriptedPrompt()

        outcome = await run_with_credential_retry(Operation.PUSH, prompt, remote)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.REMOTE_OPERATION_FAILURE
        assert "non-fast-forward" in outcome.message
        assert prompt.requests == []

    @pytest.mark.asyncio
    async def test_non_auth_failure_after_credentials(self):
        """Test a non-auth failure after a retry is terminal too."""
        remote = ScriptedRemote(auth_failure(), RemoteOperationError("push", "remote hung up"))
        prompt = ScriptedPrompt("alice")

        outcome = await run_with_credential_retry(Operation.PUSH, prompt, remote)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.attempts == 2

    @pytest.mark.asyncio
    async def test_max_attempts(self):
        """Test the optional cap on credentialed attempts."""
        remote = ScriptedRemote(auth_failure(), auth_failure(), auth_failure())
        prompt = ScriptedPrompt("alice", "alice")

        outcome = await run_with_credential_retry(Operation.PUSH, prompt, remote, max_attempts=2)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error_kind == ErrorKind.AUTHENTICATION_FAILURE
        assert len(prompt.requests) == 2
        assert len(remote.calls) == 3

    def test_operation_title(self):
        """Test operation titles."""
        assert Operation.PUSH.title == "Git Push"
        assert Operation.PULL.title == "Git Pull"

    def test_attempt_repr_hides_password(self):
        """Test the password is not part of the attempt's repr."""
        attempt = CredentialAttempt(username="alice", password="hunter2")
        assert "hunter2" not in repr(attempt)
