"""GitPanel - a git side panel driven through a Git backend service."""

__version__ = "0.1.0"
__author__ = "GitPanel Contributors"
