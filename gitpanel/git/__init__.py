"""Repository state core for GitPanel.

This package classifies file status codes, tracks the active repository,
resolves which revisions to diff and sequences remote operations with
credential retry. All git work is delegated to the backend service.
"""

from gitpanel.git.backend import Credentials, GitBackend, HttpGitBackend
from gitpanel.git.diff import (
    DiffContext,
    DiffContextResolver,
    DiffViewRegistry,
    RevisionRef,
    SpecialRef,
    resolve_diff_context,
)
from gitpanel.git.sequencer import (
    CredentialAttempt,
    CredentialRequest,
    Operation,
    Outcome,
    OutcomeStatus,
    run_with_credential_retry,
)
from gitpanel.git.signals import Signal, Subscription
from gitpanel.git.status import (
    FileStatusCategory,
    FileStatusEntry,
    classify,
    parse_status_files,
)
from gitpanel.git.tracker import RepositoryContextTracker, RepositoryStatus

__all__ = [
    # Backend
    "Credentials",
    "GitBackend",
    "HttpGitBackend",
    # Status
    "FileStatusCategory",
    "FileStatusEntry",
    "classify",
    "parse_status_files",
    # Tracker
    "RepositoryContextTracker",
    "RepositoryStatus",
    "Signal",
    "Subscription",
    # Diff
    "DiffContext",
    "DiffContextResolver",
    "DiffViewRegistry",
    "RevisionRef",
    "SpecialRef",
    "resolve_diff_context",
    # Remote operations
    "CredentialAttempt",
    "CredentialRequest",
    "Operation",
    "Outcome",
    "OutcomeStatus",
    "run_with_credential_retry",
]
