"""Utility functions for GitPanel."""

from .logging import (
    LogCapture,
    SecretRedactingFilter,
    disable_logging,
    enable_debug_logging,
    get_logger,
    redact_secrets,
    setup_logging,
)

__all__ = [
    "LogCapture",
    "SecretRedactingFilter",
    "disable_logging",
    "enable_debug_logging",
    "get_logger",
    "redact_secrets",
    "setup_logging",
]
