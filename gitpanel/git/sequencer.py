"""Push/pull sequencing with credential retry.

A remote operation first runs with whatever the system credential helper
provides. If the remote rejects it, the user is asked for credentials and
the operation is retried until it succeeds, the user cancels the prompt or
a non-authentication error ends the sequence. Only authentication failures
are retried.

The number of prompts is unbounded unless ``max_attempts`` is set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

from gitpanel.errors import AuthenticationFailure, ErrorKind, GitPanelError
from gitpanel.git.backend import Credentials

logger = logging.getLogger(__name__)

CREDENTIALS_PROMPT = "Enter credentials for remote repository"
CREDENTIALS_REJECTED = "Incorrect username or password."


class Operation(str, Enum):
    """Remote operations that may need credentials."""

    PUSH = "push"
    PULL = "pull"

    @property
    def title(self) -> str:
        return f"Git {self.value.capitalize()}"


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class CredentialRequest:
    """What the credential prompt is asked to show."""

    operation: Operation
    retry_count: int
    message: str = CREDENTIALS_PROMPT
    error: str = ""

    @property
    def is_retry(self) -> bool:
        """True when a previous credentialed attempt was rejected."""
        return bool(self.error)


@dataclass(frozen=True)
class CredentialAttempt:
    """Credentials entered for one attempt. Lives only for one invocation."""

    username: str
    password: str = field(repr=False)
    retry_count: int = 0

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.username, password=self.password)


@dataclass(frozen=True)
class Outcome:
    """Final result of a sequenced remote operation."""

    operation: Operation
    status: OutcomeStatus
    message: str = ""
    attempts: int = 0
    error: Optional[GitPanelError] = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCEEDED

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None


# Returns None when the user declines to enter credentials
CredentialPrompt = Callable[[CredentialRequest], Awaitable[Optional[CredentialAttempt]]]

# Runs the operation, raising AuthenticationFailure or another GitPanelError
RemoteExecutor = Callable[[Operation, Optional[Credentials]], Awaitable[str]]


async def run_with_credential_retry(
    operation: Operation,
    credential_prompt: CredentialPrompt,
    remote_executor: RemoteExecutor,
    max_attempts: Optional[int] = None,
) -> Outcome:
    """Run ``operation``, prompting for credentials on authentication failure.

    Args:
        operation: Push or pull.
        credential_prompt: Asks the user for credentials; None cancels.
        remote_executor: Performs the operation against the backend.
        max_attempts: Optional cap on credentialed attempts; None for no cap.

    Returns:
        SUCCEEDED when the operation completed, CANCELLED when the user
        declined a prompt, FAILED for any non-authentication error or when
        ``max_attempts`` credentialed attempts were rejected.
    """
    attempts = 0
    credentials: Optional[Credentials] = None
    retry_count = 0

    while True:
        attempts += 1
        try:
            message = await remote_executor(operation, credentials)
        except AuthenticationFailure as e:
            logger.info(f"{operation.title} rejected credentials (attempt {attempts})")
            if max_attempts is not None and retry_count >= max_attempts:
                logger.warning(f"{operation.title} gave up after {retry_count} credential attempts")
                return Outcome(operation, OutcomeStatus.FAILED, e.message, attempts, e)
            auth_error = e
        except GitPanelError as e:
            logger.warning(f"{operation.title} failed: {e.message}")
            return Outcome(operation, OutcomeStatus.FAILED, e.message, attempts, e)
        else:
            logger.info(f"{operation.title} succeeded after {attempts} attempt(s)")
            return Outcome(operation, OutcomeStatus.SUCCEEDED, message, attempts)

        # The first prompt follows an attempt without credentials and carries
        # no error; every later one follows a rejected credentialed attempt.
        request = CredentialRequest(
            operation=operation,
            retry_count=retry_count,
            error=CREDENTIALS_REJECTED if credentials is not None else "",
        )
        attempt = await credential_prompt(request)
        if attempt is None:
            logger.info(f"{operation.title} cancelled at credential prompt")
            return Outcome(
                operation,
                OutcomeStatus.CANCELLED,
                auth_error.message,
                attempts,
                auth_error,
            )

        retry_count += 1
        credentials = attempt.credentials
