"""Centralized exception hierarchy for GitPanel.

This module defines all custom exceptions used throughout GitPanel,
organized in a hierarchy for easy handling and specificity. Every error
carries an ErrorKind so the presentation layer can decide how to report
it without inspecting exception classes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Categories of failures surfaced by the core."""

    BACKEND_UNREACHABLE = "backend_unreachable"
    AUTHENTICATION_FAILURE = "authentication_failure"
    REMOTE_OPERATION_FAILURE = "remote_operation_failure"
    UNSUPPORTED_DIFF_TARGET = "unsupported_diff_target"
    FILE_DELETED = "file_deleted"
    COMMAND_FAILURE = "command_failure"
    CONFIGURATION = "configuration"


class GitPanelError(Exception):
    """Base exception for all GitPanel errors.

    Attributes:
        message: Human-readable error message.
        code: Optional error code for programmatic handling.
        details: Optional dictionary with additional error context.
    """

    kind: ErrorKind = ErrorKind.COMMAND_FAILURE

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(GitPanelError):
    """Raised when there's a configuration problem."""

    kind = ErrorKind.CONFIGURATION


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for '{field}': {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value)[:100], "reason": reason},
        )


# =============================================================================
# Backend Errors
# =============================================================================

class BackendError(GitPanelError):
    """Raised when the Git backend service rejects a request."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = "BACKEND_ERROR",
    ):
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, code, details)
        self.operation = operation
        self.status_code = status_code


class BackendUnreachableError(BackendError):
    """Raised when the Git backend service cannot be contacted."""

    kind = ErrorKind.BACKEND_UNREACHABLE

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Git backend unreachable during '{operation}': {reason}",
            operation=operation,
            code="BACKEND_UNREACHABLE",
        )
        self.details["reason"] = reason


# =============================================================================
# Git Errors
# =============================================================================

class GitCommandError(GitPanelError):
    """Raised when a git command run by the backend fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        returncode: Optional[int] = None,
        code: Optional[str] = "GIT_ERROR",
    ):
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if returncode is not None:
            details["returncode"] = returncode
        super().__init__(message[:500], code, details)
        self.operation = operation
        self.returncode = returncode


class NotARepositoryError(GitCommandError):
    """Raised when path is not a git repository."""

    def __init__(self, path: str):
        super().__init__(
            message=f"Not a git repository: {path}",
            code="NOT_A_REPOSITORY",
        )
        self.details["path"] = path


class AuthenticationFailure(GitCommandError):
    """Raised when a remote rejects the supplied (or cached) credentials."""

    kind = ErrorKind.AUTHENTICATION_FAILURE

    def __init__(self, operation: str, message: str, returncode: Optional[int] = None):
        super().__init__(
            message=message,
            operation=operation,
            returncode=returncode,
            code="AUTH_FAILED",
        )


class RemoteOperationError(GitCommandError):
    """Raised when a remote operation fails for a non-authentication reason."""

    kind = ErrorKind.REMOTE_OPERATION_FAILURE

    def __init__(self, operation: str, message: str, returncode: Optional[int] = None):
        super().__init__(
            message=message,
            operation=operation,
            returncode=returncode,
            code="REMOTE_OPERATION_FAILED",
        )


# =============================================================================
# Diff Errors
# =============================================================================

class DiffError(GitPanelError):
    """Base exception for diff and open target errors."""

    def __init__(self, message: str, path: str, code: Optional[str] = None):
        super().__init__(message, code, {"path": path})
        self.path = path


class UnsupportedDiffTargetError(DiffError):
    """Raised when a file cannot be shown in a diff view."""

    kind = ErrorKind.UNSUPPORTED_DIFF_TARGET

    def __init__(self, path: str, extension: str):
        super().__init__(
            message=f"Diff is not supported for {extension or 'extensionless'} files.",
            path=path,
            code="DIFF_NOT_SUPPORTED",
        )
        self.details["extension"] = extension


class FileDeletedError(DiffError):
    """Raised when a deleted file is targeted by open or diff."""

    kind = ErrorKind.FILE_DELETED

    def __init__(self, path: str):
        super().__init__(
            message=f"{path} has been deleted!",
            path=path,
            code="FILE_DELETED",
        )


# =============================================================================
# Command Errors
# =============================================================================

class CommandError(GitPanelError):
    """Base exception for command registry errors."""

    def __init__(self, message: str, command_id: str, code: Optional[str] = None):
        super().__init__(message, code, {"command_id": command_id})
        self.command_id = command_id


class CommandNotFoundError(CommandError):
    """Raised when a requested command is not registered."""

    def __init__(self, command_id: str):
        super().__init__(
            message=f"Command '{command_id}' not found",
            command_id=command_id,
            code="COMMAND_NOT_FOUND",
        )


class CommandDisabledError(CommandError):
    """Raised when a command is executed while disabled."""

    def __init__(self, command_id: str, reason: str = "not available in the current state"):
        super().__init__(
            message=f"Command '{command_id}' is disabled: {reason}",
            command_id=command_id,
            code="COMMAND_DISABLED",
        )
